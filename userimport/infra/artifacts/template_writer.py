from __future__ import annotations

import csv
from pathlib import Path

TEMPLATE_HEADER = ("identifier", "email", "role")
TEMPLATE_ROWS = (
    ("jdoe", "john.doe@example.com", "editor"),
    ("asmith", "anna.smith@example.com", ""),
)


def write_template(path: str, delimiter: str = ",") -> str:
    """
    Назначение:
        Пишет образец входного файла: заголовок и две строки-примера.
        Пустая роль во второй строке означает роль по умолчанию.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, delimiter=delimiter, lineterminator="\n")
        writer.writerow(TEMPLATE_HEADER)
        writer.writerows(TEMPLATE_ROWS)
    return str(target)
