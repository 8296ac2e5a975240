"""CSV export utilities."""

from __future__ import annotations

import csv
import io
from datetime import date, datetime
from typing import Iterable

from flask import Response

from homeinv.records import format_timestamp


def _serialize_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def rows_to_csv(rows: Iterable[object], columns: Iterable[tuple[str, str]]) -> str:
    """Render ``rows`` as CSV text with ``\\n`` line breaks and no trailing newline.

    Fields containing a comma, quote or line break are quoted, with quotes
    doubled.
    """

    columns = list(columns)
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow([header for _, header in columns])
    for row in rows:
        row_values = []
        for field, _ in columns:
            if isinstance(row, dict):
                value = row.get(field)
            else:
                value = getattr(row, field, None)
            row_values.append(_serialize_value(value))
        writer.writerow(row_values)
    return output.getvalue()[:-1]


def csv_response(text: str, filename: str) -> Response:
    response = Response(text, mimetype="text/csv")
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response
