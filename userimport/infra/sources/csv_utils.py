from __future__ import annotations

DELIMITERS: dict[str, str] = {
    "comma": ",",
    "semicolon": ";",
    "tab": "\t",
    "pipe": "|",
}

# '\t' в виде двух символов приходит из YAML/CLI без экранирования
_ALIASES: dict[str, str] = {
    ",": ",",
    ";": ";",
    "\t": "\t",
    "\\t": "\t",
    "|": "|",
}


def resolve_delimiter(value: str | None) -> str:
    """
    Назначение:
        Приводит имя или символ разделителя к одному символу.

    Входные данные:
        value: str | None
            comma|semicolon|tab|pipe или сам символ; None -> ','.

    Ошибки/исключения:
        ValueError для неподдерживаемого разделителя.
    """
    if value is None:
        return ","
    if value in _ALIASES:
        return _ALIASES[value]
    key = value.strip().lower()
    if key in DELIMITERS:
        return DELIMITERS[key]
    raise ValueError(f"Unsupported delimiter: {value!r} (expected one of: {', '.join(DELIMITERS)})")


def delimiter_name(delimiter: str) -> str:
    for name, char in DELIMITERS.items():
        if char == delimiter:
            return name
    return delimiter
