from datetime import datetime
from flask import Blueprint, request, jsonify, g, abort
from flask_jwt_extended import jwt_required
from sqlalchemy import or_
from schooldesk.extensions import db
from schooldesk.models import Notice, NoticeRecipient, User, NOTICE_TYPES
from schooldesk.schemas.base import IdList
from schooldesk.schemas.notices import NoticeCreate, NoticePatch
from utils.access_control import scoped, current_school_id, ids_in_school
from utils.decorators import permission_required
from utils.errors import guarded, validate, ValidationFailed
from utils.notify import notify
from utils.responses import wants_json, render_page, respond, request_data
from utils.table_query import table_query

notices_bp = Blueprint("notices", __name__)

NOTICE_COLUMNS = [
    {"field": "sender_name", "relation": "sender", "related_field": "username", "header": "Sender"},
    {"field": "type", "filter_type": "in", "options": list(NOTICE_TYPES)},
]


def visible_notices():
    """Notices of the current school plus every public notice."""
    return Notice.query.filter(or_(Notice.school_id == current_school_id(), Notice.is_public.is_(True)))


def _visible_or_404(notice_id, with_trashed=False):
    query = visible_notices().filter(Notice.id == notice_id)
    if not with_trashed:
        query = query.filter(Notice.deleted.is_(False))
    notice = query.first()
    if notice is None:
        abort(404)
    return notice


def _owned_or_404(notice_id, with_trashed=False):
    """Notices can only be changed by their own school, or by the sender for public ones."""
    notice = _visible_or_404(notice_id, with_trashed)
    if notice.school_id != current_school_id() and notice.sender_id != g.current_user.id:
        abort(404)
    return notice


def _recipients(recipient_ids):
    if recipient_ids is None:
        return scoped(User).filter(User.deleted.is_(False)).all()
    owned = ids_in_school(User, recipient_ids, with_trashed=False)
    foreign = sorted(set(recipient_ids) - owned)
    if foreign:
        raise ValidationFailed({"recipient_ids": f"Unknown users: {', '.join(map(str, foreign))}"})
    return User.query.filter(User.id.in_(recipient_ids)).all()


@notices_bp.route("/", methods=["GET"])
@jwt_required()
@permission_required("notice.view_any")
@guarded("Failed to load notices")
def index():
    user_id = g.current_user.id
    page = table_query(visible_notices(), Notice, request.args, NOTICE_COLUMNS)
    payload = page.to_dict(lambda notice: notice.to_dict(user_id=user_id))
    if wants_json():
        return jsonify(payload), 200
    return render_page("Notices/Index", {"notices": payload, "filters": request.args.to_dict()})


@notices_bp.route("/", methods=["POST"])
@jwt_required()
@permission_required("notice.create")
@guarded("Failed to create notice", redirect_to="notices.index")
def store():
    data = validate(NoticeCreate, request_data())
    recipients = _recipients(data.recipient_ids)

    notice = Notice(
        school_id=None if data.is_public else current_school_id(),
        sender_id=g.current_user.id,
        title=data.title,
        content=data.content,
        type=data.type,
        is_public=data.is_public,
        published_at=data.published_at or datetime.utcnow(),
    )
    notice.recipients = [NoticeRecipient(user_id=user.id) for user in recipients]
    db.session.add(notice)
    db.session.flush()

    notify(recipients, "notice_published", {"notice_id": notice.id, "title": notice.title, "type": notice.type})
    db.session.commit()
    return respond("Notice created successfully", 201, "notices.index", notice=notice.to_dict())


@notices_bp.route("/<int:notice_id>", methods=["GET"])
@jwt_required()
@permission_required("notice.view")
def show(notice_id):
    notice = _visible_or_404(notice_id, with_trashed=True)
    data = notice.to_dict(user_id=g.current_user.id)
    data["content"] = notice.content
    if wants_json():
        return jsonify(data), 200
    return render_page("Notices/Show", {"notice": data})


@notices_bp.route("/<int:notice_id>", methods=["PUT", "PATCH"])
@jwt_required()
@permission_required("notice.update")
@guarded("Failed to update notice", redirect_to="notices.index")
def update(notice_id):
    notice = _owned_or_404(notice_id)
    data = validate(NoticePatch, request_data()).model_dump(exclude_unset=True)

    for field, value in data.items():
        setattr(notice, field, value)
    if "is_public" in data:
        notice.school_id = None if notice.is_public else current_school_id()
    db.session.commit()
    return respond("Notice updated successfully", 200, "notices.index", notice=notice.to_dict())


@notices_bp.route("/<int:notice_id>/read", methods=["POST"])
@jwt_required()
@permission_required("notice.mark_read")
@guarded("Failed to mark notice as read", redirect_to="notices.index")
def mark_read(notice_id):
    notice = _visible_or_404(notice_id)
    recipient = notice.recipient_for(g.current_user.id)
    if recipient is None:
        abort(404)

    recipient.mark_read()
    db.session.commit()
    return respond("Notice marked as read", 200, "notices.index", notice_id=notice.id, is_read=True)


@notices_bp.route("/", methods=["DELETE"])
@jwt_required()
@permission_required("notice.delete")
@guarded("Failed to delete notices", redirect_to="notices.index")
def destroy():
    ids = validate(IdList, request_data()).ids
    notices = [_owned_or_404(notice_id) for notice_id in ids]
    for notice in notices:
        notice.soft_delete()
    db.session.commit()
    return respond(f"{len(notices)} notice(s) deleted successfully", 200, "notices.index")


@notices_bp.route("/restore", methods=["POST"])
@jwt_required()
@permission_required("notice.restore")
@guarded("Failed to restore notices", redirect_to="notices.index")
def restore():
    ids = validate(IdList, request_data()).ids
    notices = [_owned_or_404(notice_id, with_trashed=True) for notice_id in ids]
    for notice in notices:
        notice.restore()
    db.session.commit()
    return respond(f"{len(notices)} notice(s) restored successfully", 200, "notices.index")
