from datetime import datetime
from flask import Blueprint, request, jsonify, g
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import Notification
from schooldesk.schemas.base import IdList
from utils.decorators import permission_required
from utils.errors import guarded, validate
from utils.responses import request_data
from utils.table_query import table_query

notifications_bp = Blueprint("notifications", __name__)


def _own():
    return Notification.query.filter(Notification.user_id == g.current_user.id)


@notifications_bp.route("/", methods=["GET"])
@jwt_required()
@permission_required(school_scoped=False)
@guarded("Failed to load notifications")
def index():
    query = _own()
    if request.args.get("unread") in ("1", "true"):
        query = query.filter(Notification.read_at.is_(None))
    payload = table_query(query, Notification, request.args).to_dict()
    payload["unread"] = _own().filter(Notification.read_at.is_(None)).count()
    return jsonify(payload), 200


@notifications_bp.route("/read", methods=["POST"])
@jwt_required()
@permission_required(school_scoped=False)
@guarded("Failed to mark notifications as read")
def mark_read():
    ids = validate(IdList, request_data()).ids
    updated = _own().filter(Notification.id.in_(ids), Notification.read_at.is_(None)).update(
        {Notification.read_at: datetime.utcnow()}, synchronize_session=False
    )
    db.session.commit()
    return jsonify({"message": f"{updated} notification(s) marked as read", "updated": updated}), 200


@notifications_bp.route("/<int:notification_id>/read", methods=["POST"])
@jwt_required()
@permission_required(school_scoped=False)
@guarded("Failed to mark notification as read")
def mark_one_read(notification_id):
    notification = _own().filter(Notification.id == notification_id).first_or_404()
    if notification.read_at is None:
        notification.read_at = datetime.utcnow()
        db.session.commit()
    return jsonify(notification.to_dict()), 200
