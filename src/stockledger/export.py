"""CSV serialization of the catalog export snapshot."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterable, Mapping, TextIO

EXPORT_HEADERS = ("id", "name", "quantity", "min_quantity", "category", "location")


def write_csv(rows: Iterable[Mapping[str, Any]], handle: TextIO) -> int:
    """Write ``rows`` with every field quoted; return the number of data rows."""

    handle.write(",".join(EXPORT_HEADERS) + "\n")
    writer = csv.writer(handle, quoting=csv.QUOTE_ALL, lineterminator="\n")
    count = 0
    for row in rows:
        writer.writerow(["" if row.get(column) is None else row.get(column) for column in EXPORT_HEADERS])
        count += 1
    return count


def export_csv(rows: Iterable[Mapping[str, Any]], path: Path) -> int:
    path = path.expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        return write_csv(rows, handle)
