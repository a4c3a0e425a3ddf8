from flask import Blueprint, Response, request, jsonify, current_app, g, stream_with_context
from flask_jwt_extended import jwt_required
from schooldesk.models import Payment
from schooldesk.services.finance import (
    financial_summary, payments_query, payment_row, iter_csv, export_filename, report_range,
)
from utils.access_control import current_school_id
from utils.audit import log_event
from utils.decorators import permission_required
from utils.errors import guarded
from utils.responses import wants_json, render_page
from utils.table_query import table_query

finance_reports_bp = Blueprint("finance_reports", __name__)

PAYMENT_COLUMNS = [
    {"field": "student_name", "relation": "student", "related_field": "last_name", "header": "Student"},
    {"field": "fee_name", "relation": "fee", "related_field": "name", "header": "Fee"},
    {"field": "payment_status", "filter_type": "in", "options": ["pending", "success", "failed"]},
]


@finance_reports_bp.route("/report", methods=["GET"])
@jwt_required()
@permission_required("finance_report.view")
@guarded("Failed to build financial report")
def report():
    start, end = report_range(request.args)
    school_id = current_school_id()

    payments = table_query(
        payments_query(school_id, start, end), Payment, request.args, PAYMENT_COLUMNS
    ).to_dict()
    props = {"summary": financial_summary(school_id, start, end), "payments": payments}
    if wants_json():
        return jsonify(props), 200
    return render_page("Finance/Report", {**props, "filters": request.args.to_dict()})


@finance_reports_bp.route("/report/export", methods=["GET"])
@jwt_required()
@permission_required("finance_report.export")
@guarded("Failed to export financial report")
def export():
    start, end = report_range(request.args)
    payments = (
        payments_query(current_school_id(), start, end)
        .filter(Payment.deleted.is_(False))
        .order_by(Payment.payment_date.asc(), Payment.id.asc())
        .all()
    )
    rows = [payment_row(payment) for payment in payments]

    log_event(
        "FINANCE_EXPORT", user_id=g.current_user.id, ip=request.remote_addr,
        description=f"{len(rows)} payment(s) from {start} to {end}",
    )
    current_app.logger.info("Financial export of %d row(s) for school %s", len(rows), current_school_id())

    response = Response(stream_with_context(iter_csv(rows)), mimetype="text/csv")
    response.headers["Content-Disposition"] = f'attachment; filename="{export_filename()}"'
    return response
