import pytest
from typer.testing import CliRunner

from userimport.cli import app
from userimport.config import Settings, envName, load_settings, parse_bool
from userimport.errors import ConfigError

runner = CliRunner()


def _dirs(tmp_path):
    return [
        "--log-dir", str(tmp_path / "logs"),
        "--report-dir", str(tmp_path / "reports"),
        "--data-dir", str(tmp_path / "data"),
    ]


def test_defaults_without_sources():
    loaded = load_settings(config_path=None, cli_overrides={})
    assert loaded.settings == Settings()
    assert loaded.sources_used == []
    assert loaded.settings.import_config().default_role == "authenticated"


def test_priority_cli_over_env_over_config(tmp_path, monkeypatch):
    cfg = tmp_path / "config.yml"
    cfg.write_text(
        "\n".join([
            'host: "1.1.1.1"',
            "port: 1111",
            'api_username: "cfg_user"',
            "max_import_size: 50",
            "allow_duplicate_emails: true",
        ]),
        encoding="utf-8",
    )
    monkeypatch.setenv("USERIMPORT_API_HOST", "2.2.2.2")
    monkeypatch.setenv("USERIMPORT_API_USERNAME", "env_user")
    monkeypatch.setenv("USERIMPORT_MAX_IMPORT_SIZE", "70")

    loaded = load_settings(config_path=str(cfg), cli_overrides={"host": "3.3.3.3", "port": None})

    assert loaded.settings.host == "3.3.3.3"
    assert loaded.settings.port == 1111
    assert loaded.settings.api_username == "env_user"
    assert loaded.settings.max_import_size == 70
    assert loaded.settings.allow_duplicate_emails is True
    assert loaded.sources_used == ["config", "env", "cli"]


def test_cli_header_reflects_priority_and_masks_password(tmp_path, monkeypatch):
    cfg = tmp_path / "config.yml"
    cfg.write_text('host: "1.1.1.1"\nport: 1111\napi_username: "cfg_user"\napi_password: "cfg_pass"\n', encoding="utf-8")
    monkeypatch.setenv("USERIMPORT_API_PORT", "2222")
    monkeypatch.setenv("USERIMPORT_API_PASSWORD", "env_pass")

    result = runner.invoke(
        app,
        ["--config", str(cfg), "--host", "3.3.3.3", *_dirs(tmp_path), "directory", "status"],
    )

    assert result.exit_code == 0
    assert "host=3.3.3.3 port=2222 api_username=cfg_user" in result.stdout
    assert "api_password=***" in result.stdout
    assert "env_pass" not in result.stdout


def test_empty_default_role_falls_back(monkeypatch):
    monkeypatch.setenv("USERIMPORT_DEFAULT_ROLE", "   ")
    loaded = load_settings(config_path=None, cli_overrides={"default_role": ""})
    assert loaded.settings.default_role == "authenticated"


@pytest.mark.parametrize("value", ["0", "10001", "abc"])
def test_invalid_max_import_size_rejected(monkeypatch, value):
    monkeypatch.setenv("USERIMPORT_MAX_IMPORT_SIZE", value)
    with pytest.raises(ConfigError) as exc:
        load_settings(config_path=None, cli_overrides={})
    assert exc.value.key == "max_import_size"


def test_unknown_config_key_rejected(tmp_path):
    cfg = tmp_path / "config.yml"
    cfg.write_text("unknown_option: 1\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(config_path=str(cfg), cli_overrides={})


def test_missing_config_file_rejected(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(config_path=str(tmp_path / "absent.yml"), cli_overrides={})


def test_invalid_backend_exits_with_code_2(tmp_path):
    result = runner.invoke(app, ["--directory-backend", "ldap", *_dirs(tmp_path), "directory", "status"])
    assert result.exit_code == 2


def test_parse_bool_and_env_names():
    assert parse_bool("Yes") is True
    assert parse_bool("off") is False
    with pytest.raises(ValueError):
        parse_bool("maybe")
    assert envName("host") == "USERIMPORT_API_HOST"
    assert envName("max_import_size") == "USERIMPORT_MAX_IMPORT_SIZE"


def test_api_base_url():
    assert Settings(host="dir.local", port=8443).api_base_url() == "https://dir.local:8443"
    assert Settings(host="http://dir.local/").api_base_url() == "http://dir.local/"
    assert Settings().api_base_url() is None
