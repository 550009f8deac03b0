"""
Sales report exports (CSV and PDF).

Pure formatting over sales_between() / sales_report(); no business rules
live here. The CSV lists every sale in range, whatever its status, while the
PDF renders the COMPLETED-only summary.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from pos.time_utils import reporting_zone, to_local
from .reporting_service import SalesReportSummary, require_range, sales_report
from .sales_service import sales_between

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "Sale Number", "Date", "Customer", "Items", "Subtotal",
    "Tax", "Discount", "Total", "Payment Method", "Status",
]


def report_filename(start_date: date, end_date: date, extension: str) -> str:
    return f"sales_report_{start_date:%Y%m%d}_{end_date:%Y%m%d}.{extension}"


def sales_csv_report(start_date: date, end_date: date) -> bytes:
    require_range(start_date, end_date)
    logger.info("Generating CSV report from %s to %s", start_date, end_date)

    tz = reporting_zone()
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for sale in sales_between(start_date, end_date):
        writer.writerow([
            sale.sale_number,
            to_local(sale.sale_date, tz).strftime("%Y-%m-%d %H:%M:%S"),
            sale.customer_name or "N/A",
            len(sale.items),
            f"{sale.subtotal:.2f}",
            f"{sale.tax_amount:.2f}",
            f"{sale.discount_amount:.2f}",
            f"{sale.total_amount:.2f}",
            sale.payment_method,
            sale.status,
        ])

    return buffer.getvalue().encode("utf-8")


def _header_style() -> TableStyle:
    return TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ])


def _section(title: str, header: list[str], rows: list[list[str]], widths: list[float], styles) -> list:
    table = Table([header] + rows, colWidths=widths, repeatRows=1)
    table.setStyle(_header_style())
    return [Paragraph(title, styles["Heading2"]), table, Spacer(1, 12)]


def render_sales_pdf(summary: SalesReportSummary) -> bytes:
    """Lay out a SalesReportSummary as a PDF document."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title="Sales Report")
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle("ReportTitle", parent=styles["Title"], fontSize=20, alignment=TA_CENTER)
    period_style = ParagraphStyle("ReportPeriod", parent=styles["Normal"], fontSize=12, alignment=TA_CENTER)

    width = doc.width
    story = [
        Paragraph("SALES REPORT", title_style),
        Paragraph(f"Period: {summary.start_date.isoformat()} to {summary.end_date.isoformat()}", period_style),
        Spacer(1, 18),
    ]

    totals = Table(
        [
            ["Total Sales", str(summary.total_sales)],
            ["Total Revenue", f"${summary.total_revenue:.2f}"],
            ["Total Tax", f"${summary.total_tax:.2f}"],
            ["Total Discount", f"${summary.total_discount:.2f}"],
            ["Average Sale", f"${summary.average_sale_amount:.2f}"],
        ],
        colWidths=[width * 0.3, width * 0.3],
        hAlign="LEFT",
    )
    totals.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
    ]))
    story += [totals, Spacer(1, 20)]

    if summary.daily_summary:
        story += _section(
            "Daily Summary",
            ["Date", "Sales Count", "Revenue"],
            [[row.date.isoformat(), str(row.sales_count), f"${row.revenue:.2f}"] for row in summary.daily_summary],
            [width * 0.4, width * 0.2, width * 0.4],
            styles,
        )

    if summary.top_products:
        story += _section(
            "Top Products",
            ["Product", "Qty Sold", "Revenue"],
            [[row.product_name, str(row.quantity_sold), f"${row.revenue:.2f}"] for row in summary.top_products],
            [width * 0.5, width * 0.17, width * 0.33],
            styles,
        )

    if summary.payment_method_breakdown:
        story += _section(
            "Payment Method Breakdown",
            ["Payment Method", "Count", "Amount"],
            [[row.payment_method, str(row.count), f"${row.amount:.2f}"] for row in summary.payment_method_breakdown],
            [width * 0.4, width * 0.2, width * 0.4],
            styles,
        )

    doc.build(story)
    return buffer.getvalue()


def sales_pdf_report(start_date: date, end_date: date) -> bytes:
    logger.info("Generating PDF report from %s to %s", start_date, end_date)
    return render_sales_pdf(sales_report(start_date, end_date))
