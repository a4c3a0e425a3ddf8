from flask import Blueprint, request, jsonify, g
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import School
from schooldesk.schemas.people import SchoolCreate, SchoolPatch
from utils.audit import log_event
from utils.decorators import role_required
from utils.errors import guarded, validate, ValidationFailed
from utils.table_query import table_query

schools_bp = Blueprint('schools', __name__)


def _unique_name(name, school_id=None):
    query = School.query.filter(School.name == name)
    if school_id:
        query = query.filter(School.id != school_id)
    if query.first():
        raise ValidationFailed({"name": "A school with this name already exists."})


@schools_bp.route('/', methods=['GET'])
@jwt_required()
@role_required('superuser')
@guarded("Failed to load schools")
def index():
    return jsonify(table_query(School.query, School, request.args).to_dict()), 200


@schools_bp.route('/', methods=['POST'])
@jwt_required()
@role_required('superuser')
@guarded("Failed to create school")
def store():
    data = validate(SchoolCreate, request.get_json(silent=True) or {})
    _unique_name(data.name)

    school = School(**data.model_dump())
    db.session.add(school)
    db.session.commit()

    log_event("SCHOOL_CREATED", user_id=g.current_user.id, ip=request.remote_addr, description=school.name)
    return jsonify({"message": "School created successfully", "school": school.to_dict()}), 201


@schools_bp.route('/<int:school_id>', methods=['PUT', 'PATCH'])
@jwt_required()
@role_required('superuser')
@guarded("Failed to update school")
def update(school_id):
    school = db.session.get(School, school_id)
    if school is None:
        return jsonify({"error": "School not found"}), 404

    data = validate(SchoolPatch, request.get_json(silent=True) or {}).model_dump(exclude_unset=True)
    if data.get("name"):
        _unique_name(data["name"], school.id)
    for field, value in data.items():
        setattr(school, field, value)
    db.session.commit()
    return jsonify({"message": "School updated successfully", "school": school.to_dict()}), 200
