from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import AcademicSession, PromotionBatch, PromotionStudent, PROMOTION_STATUSES
from schooldesk.schemas.promotion import PromotionApprove, PromotionReject, PromotionOverride
from schooldesk.services import promotion as promotions
from utils.access_control import scoped, get_scoped_or_404
from utils.audit import log_event
from utils.decorators import permission_required
from utils.errors import guarded, validate
from utils.responses import wants_json, render_page, respond, fail, request_data
from utils.table_query import table_query

promotions_bp = Blueprint("promotions", __name__)

BATCH_COLUMNS = [
    {"field": "session_name", "relation": "academic_session", "related_field": "name", "header": "Session"},
    {"field": "principal_name", "relation": "principal", "related_field": "username", "header": "Principal"},
    {"field": "status", "filter_type": "in", "options": list(PROMOTION_STATUSES)},
]

STUDENT_COLUMNS = [
    {"field": "student_name", "relation": "student", "related_field": "last_name", "header": "Student"},
    {"field": "recommendation", "filter_type": "in",
     "options": ["promote", "repeat", "probation", "graduated"]},
]


@promotions_bp.route("/", methods=["GET"])
@jwt_required()
@permission_required("promotion.view_any")
@guarded("Failed to load promotion batches")
def index():
    payload = table_query(scoped(PromotionBatch), PromotionBatch, request.args, BATCH_COLUMNS).to_dict()
    if wants_json():
        return jsonify(payload), 200
    return render_page("Promotions/Index", {"batches": payload, "filters": request.args.to_dict()})


@promotions_bp.route("/sessions/<int:session_id>/generate", methods=["POST"])
@jwt_required()
@permission_required("promotion.create")
@guarded("Failed to generate promotion batch", redirect_to="promotions.index")
def generate(session_id):
    session = get_scoped_or_404(AcademicSession, session_id)
    batch, created = promotions.create_promotion_batch(session)
    if not created:
        return fail("A promotion batch already exists for this session", 409, "promotions.index")
    db.session.commit()

    log_event(
        "PROMOTION_BATCH_CREATED", user_id=g.current_user.id, ip=request.remote_addr,
        description=f"Batch {batch.id} for session {session.id}",
    )
    return respond(
        "Promotion batch generated successfully", 201, "promotions.show", {"batch_id": batch.id},
        batch=batch.to_dict(),
    )


@promotions_bp.route("/<int:batch_id>", methods=["GET"])
@jwt_required()
@permission_required("promotion.view")
@guarded("Failed to load promotion batch")
def show(batch_id):
    batch = get_scoped_or_404(PromotionBatch, batch_id, with_trashed=True)
    students = table_query(
        PromotionStudent.query.filter(PromotionStudent.promotion_batch_id == batch.id),
        PromotionStudent, request.args, STUDENT_COLUMNS,
    ).to_dict()
    props = {"batch": batch.to_dict(), "stats": promotions.review_stats(batch), "students": students}
    if wants_json():
        return jsonify(props), 200
    return render_page("Promotions/Review", props)


@promotions_bp.route("/<int:batch_id>/approve", methods=["POST"])
@jwt_required()
@permission_required("promotion.approve")
@guarded("Failed to approve promotion batch", redirect_to="promotions.index")
def approve(batch_id):
    batch = get_scoped_or_404(PromotionBatch, batch_id)
    data = validate(PromotionApprove, request_data())
    promotions.approve(batch, g.current_user, data.comments)
    db.session.commit()

    current_app.logger.info("Promotion batch %s approved by user %s", batch.id, g.current_user.id)
    return respond("Promotion batch approved", 200, "promotions.show", {"batch_id": batch.id},
                   batch=batch.to_dict())


@promotions_bp.route("/<int:batch_id>/reject", methods=["POST"])
@jwt_required()
@permission_required("promotion.approve")
@guarded("Failed to reject promotion batch", redirect_to="promotions.index")
def reject(batch_id):
    batch = get_scoped_or_404(PromotionBatch, batch_id)
    data = validate(PromotionReject, request_data())
    promotions.reject(batch, g.current_user, data.comments)
    db.session.commit()

    current_app.logger.info("Promotion batch %s rejected by user %s", batch.id, g.current_user.id)
    return respond("Promotion batch rejected", 200, "promotions.show", {"batch_id": batch.id},
                   batch=batch.to_dict())


@promotions_bp.route("/<int:batch_id>/override", methods=["POST"])
@jwt_required()
@permission_required("promotion.override")
@guarded("Failed to override promotion decisions", redirect_to="promotions.index")
def bulk_override(batch_id):
    batch = get_scoped_or_404(PromotionBatch, batch_id)
    data = validate(PromotionOverride, request_data())
    updated = promotions.bulk_override(batch, g.current_user, data.student_ids, data.decision, data.reason)
    db.session.commit()
    return respond(
        f"{updated} decision(s) updated", 200, "promotions.show", {"batch_id": batch.id},
        updated=updated, stats=promotions.review_stats(batch),
    )


@promotions_bp.route("/<int:batch_id>/execute", methods=["POST"])
@jwt_required()
@permission_required("promotion.execute")
@guarded("Failed to execute promotion batch", redirect_to="promotions.index")
def execute(batch_id):
    batch = get_scoped_or_404(PromotionBatch, batch_id)
    promotions.execute(batch, g.current_user)

    log_event(
        "PROMOTION_BATCH_EXECUTED", user_id=g.current_user.id, ip=request.remote_addr,
        description=f"Batch {batch_id} queued",
    )
    db.session.expire_all()
    batch = db.session.get(PromotionBatch, batch_id)
    return respond("Promotion batch execution started", 202, "promotions.show", {"batch_id": batch_id},
                   batch=batch.to_dict())
