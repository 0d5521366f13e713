"""CSV serialization of consolidated rows."""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence


logger = logging.getLogger(__name__)


def collect_headers(rows: Iterable[Mapping[str, Any]]) -> list[str]:
    """Union of row keys in first-seen order."""
    headers: dict[str, None] = {}
    for row in rows:
        for key in row:
            headers.setdefault(key, None)
    return list(headers)


def rows_to_csv(rows: Sequence[Mapping[str, Any]]) -> str:
    """Render rows as comma-separated text with a header line.

    Values containing commas, quotes or line breaks are quoted and inner
    quotes doubled. Records are separated by ``\\n`` with no trailing newline.
    """
    if not rows:
        return ""
    headers = collect_headers(rows)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    for row in rows:
        cells = [_format_cell(row.get(header)) for header in headers]
        if cells == [""]:
            # csv quotes a lone empty field
            buffer.write("\n")
        else:
            writer.writerow(cells)
    text = buffer.getvalue()
    return text[:-1] if text.endswith("\n") else text


def write_csv(text: str, file_name: str, output_dir: str | Path | None = None) -> Path:
    """Write CSV text as a UTF-8 file and return its path."""
    if output_dir is None:
        from core.config import get_settings

        output_dir = get_settings().export_dir
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / Path(file_name).name
    path.write_text(text, encoding="utf-8", newline="")
    logger.info("Wrote %s (%d bytes)", path, len(text.encode("utf-8")))
    return path


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


__all__ = ["collect_headers", "rows_to_csv", "write_csv"]
