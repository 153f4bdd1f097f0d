from __future__ import annotations

import io
from typing import Iterable, Optional

import pandas as pd
from fastapi.responses import StreamingResponse
from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from precast_erp.core.errors import ValidationFailedError
from precast_erp.db.base import utcnow

EXPORT_FORMATS = ("csv", "xlsx", "pdf")
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_TABLE_STYLE = TableStyle(
    [
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
        ("ALIGN", (0, 0), (-1, -1), "LEFT"),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
    ]
)


def _attachment(filename: str) -> dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


# PUBLIC_INTERFACE
def render_pdf(title: str, df: Optional[pd.DataFrame] = None, lines: Iterable[str] = ()) -> bytes:
    """
    Render a landscape PDF with a title, optional text lines and an optional
    table built from `df`.
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=landscape(letter), leftMargin=18, rightMargin=18, topMargin=18, bottomMargin=18
    )
    styles = getSampleStyleSheet()
    elements: list = [Paragraph(title, styles["Title"])]
    for line in lines:
        elements.append(Paragraph(line, styles["Normal"]))
    if df is not None:
        elements.append(Spacer(1, 12))
        data = [list(df.columns)] + df.astype(str).values.tolist()
        table = Table(data, repeatRows=1)
        table.setStyle(_TABLE_STYLE)
        elements.append(table)
    doc.build(elements)
    return buffer.getvalue()


# PUBLIC_INTERFACE
def export_dataframe(df: pd.DataFrame, filename_base: str, export_format: str = "csv") -> StreamingResponse:
    """
    Convert DataFrame to the requested format and return a StreamingResponse.

    Supported formats:
      - csv: text/csv
      - xlsx: spreadsheet written with the openpyxl engine
      - pdf: application/pdf (simple tabular rendering)
    """
    export_format = (export_format or "csv").lower()
    if export_format not in EXPORT_FORMATS:
        raise ValidationFailedError(f"Unsupported export format: {export_format}")

    if export_format == "xlsx":
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Report")
        buffer.seek(0)
        return StreamingResponse(buffer, media_type=XLSX_MEDIA_TYPE, headers=_attachment(f"{filename_base}.xlsx"))

    if export_format == "pdf":
        title = f"{filename_base.replace('_', ' ').title()} ({utcnow().strftime('%Y-%m-%d %H:%M UTC')})"
        buffer = io.BytesIO(render_pdf(title, df))
        return StreamingResponse(buffer, media_type="application/pdf", headers=_attachment(f"{filename_base}.pdf"))

    text = io.StringIO()
    df.to_csv(text, index=False)
    text.seek(0)
    return StreamingResponse(text, media_type="text/csv", headers=_attachment(f"{filename_base}.csv"))
