from flask import Blueprint, jsonify, g
from flask_jwt_extended import jwt_required
from sqlalchemy import func
from schooldesk.extensions import db
from schooldesk.models import (
    Hostel, Notice, Payment, Payroll, PromotionBatch, Staff, Student, Term, TransportRoute, Vehicle,
)
from schooldesk.services.academic import current_session
from schooldesk.services.payroll import money
from utils.access_control import scoped, current_school_id
from utils.decorators import permission_required
from utils.errors import guarded
from utils.responses import wants_json, render_page

dashboard_bp = Blueprint('dashboard', __name__)

COUNTED = {
    "students": Student,
    "staff": Staff,
    "vehicles": Vehicle,
    "routes": TransportRoute,
    "hostels": Hostel,
}


def _live(model):
    return scoped(model).filter(model.deleted.is_(False))


@dashboard_bp.route('/summary')
@jwt_required()
@permission_required("dashboard.view")
@guarded("Failed to load dashboard")
def summary():
    school_id = current_school_id()
    session = current_session(school_id)
    active_term = None
    if session:
        active_term = Term.query.filter_by(
            academic_session_id=session.id, status="active", deleted=False
        ).first()

    totals = {name: _live(model).count() for name, model in COUNTED.items()}
    totals["notices"] = Notice.query.filter_by(school_id=school_id, deleted=False).count()

    payrolls_by_status = dict(
        _live(Payroll).with_entities(Payroll.status, func.count(Payroll.id)).group_by(Payroll.status).all()
    )
    collected = (
        db.session.query(func.coalesce(func.sum(Payment.payment_amount), 0))
        .filter(Payment.school_id == school_id, Payment.deleted.is_(False), Payment.payment_status == "success")
        .scalar()
    )
    pending_batches = _live(PromotionBatch).filter(PromotionBatch.status == "pending").count()

    props = {
        "school": g.school.to_dict(),
        "current_session": session.to_dict() if session else None,
        "active_term": active_term.to_dict() if active_term else None,
        "totals": totals,
        "payrolls_by_status": payrolls_by_status,
        "payments_collected": str(money(collected)),
        "pending_promotion_batches": pending_batches,
    }
    if wants_json():
        return jsonify(props), 200
    return render_page("Dashboard", props)
