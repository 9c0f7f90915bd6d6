from __future__ import annotations

import csv
import json
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO, StringIO
from typing import Any, Iterable, Mapping

from django.core.serializers.json import DjangoJSONEncoder
from django.http import HttpResponse
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font


EXPORT_FORMATS = ("csv", "xlsx", "json")
DEFAULT_EXPORT_FORMAT = "csv"

CONTENT_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "json": "application/json",
}


def resolve_export_format(requested: str | None) -> str:
    fmt = (requested or "").strip().lower()
    return fmt if fmt in EXPORT_FORMATS else DEFAULT_EXPORT_FORMAT


def build_export_filename(base: str, fmt: str) -> str:
    stamp = timezone.localtime().strftime("%Y%m%d_%H%M%S")
    return f"{base}_export_{stamp}.{fmt}"


def normalize_export_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Sí" if value else "No"
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, cls=DjangoJSONEncoder, ensure_ascii=False)
    return str(value)


def _attachment(content: bytes | str, *, fmt: str, filename: str) -> HttpResponse:
    response = HttpResponse(content, content_type=CONTENT_TYPES[fmt])
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


def export_to_csv(rows: Iterable[Mapping[str, Any]], columns: Mapping[str, str], filename: str) -> HttpResponse:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(list(columns.values()))
    for row in rows:
        writer.writerow([normalize_export_value(row.get(key)) for key in columns])
    return _attachment(buffer.getvalue(), fmt="csv", filename=filename)


def export_to_xlsx(
    rows: Iterable[Mapping[str, Any]],
    columns: Mapping[str, str],
    filename: str,
    *,
    title: str = "Exportación",
) -> HttpResponse:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title[:31]
    sheet.append(list(columns.values()))
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for row in rows:
        sheet.append([normalize_export_value(row.get(key)) for key in columns])

    buffer = BytesIO()
    workbook.save(buffer)
    buffer.seek(0)
    return _attachment(buffer.getvalue(), fmt="xlsx", filename=filename)


def export_to_json(rows: Iterable[Mapping[str, Any]], columns: Mapping[str, str], filename: str) -> HttpResponse:
    payload = [{key: row.get(key) for key in columns} for row in rows]
    content = json.dumps(payload, cls=DjangoJSONEncoder, ensure_ascii=False)
    return _attachment(content, fmt="json", filename=filename)


EXPORTERS = {
    "csv": export_to_csv,
    "xlsx": export_to_xlsx,
    "json": export_to_json,
}


def build_export_response(
    *,
    rows: Iterable[Mapping[str, Any]],
    columns: Mapping[str, str],
    filename_base: str,
    fmt: str | None,
) -> HttpResponse:
    resolved = resolve_export_format(fmt)
    filename = build_export_filename(filename_base, resolved)
    return EXPORTERS[resolved](rows, columns, filename)
