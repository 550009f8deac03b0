from flask import Blueprint, Response, request

from pos.decorators import require_auth, require_role
from pos.models import ROLE_ADMIN, ROLE_MANAGER
from pos.services import export_service, reporting_service
from pos.time_utils import parse_iso_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports/sales")


def _report_range():
    start = request.args.get("start_date")
    end = request.args.get("end_date")
    if not start or not end:
        raise reporting_service.ReportError("start_date and end_date are required")
    try:
        start_date, end_date = parse_iso_date(start), parse_iso_date(end)
    except ValueError:
        raise reporting_service.ReportError("Dates must be ISO formatted (YYYY-MM-DD)")
    reporting_service.require_range(start_date, end_date)
    return start_date, end_date


def _attachment(body: bytes, mimetype: str, filename: str) -> Response:
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@reports_bp.get("/summary")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def sales_summary():
    start_date, end_date = _report_range()
    report = reporting_service.sales_report(start_date, end_date)
    return report.to_dict(), 200


@reports_bp.get("/download/csv")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def download_sales_csv():
    start_date, end_date = _report_range()
    body = export_service.sales_csv_report(start_date, end_date)
    return _attachment(
        body,
        "text/csv",
        export_service.report_filename(start_date, end_date, "csv"),
    )


@reports_bp.get("/download/pdf")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def download_sales_pdf():
    start_date, end_date = _report_range()
    body = export_service.sales_pdf_report(start_date, end_date)
    return _attachment(
        body,
        "application/pdf",
        export_service.report_filename(start_date, end_date, "pdf"),
    )
