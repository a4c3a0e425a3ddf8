from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import ClassLevel, ClassSection
from schooldesk.schemas.academic import ClassLevelCreate, ClassSectionCreate
from utils.access_control import scoped, current_school_id
from utils.decorators import permission_required
from utils.errors import guarded, validate, ValidationFailed
from utils.responses import respond, request_data
from utils.table_query import table_query

classes_bp = Blueprint("classes", __name__)

SECTION_COLUMNS = [
    {"field": "class_level_name", "relation": "class_level", "related_field": "name", "header": "Level"},
]


@classes_bp.route("/levels", methods=["GET"])
@jwt_required()
@permission_required("class.view_any")
def list_levels():
    levels = scoped(ClassLevel).order_by(ClassLevel.sequence.asc()).all()
    return jsonify({"data": [level.to_dict() for level in levels]}), 200


@classes_bp.route("/levels", methods=["POST"])
@jwt_required()
@permission_required("class.create")
@guarded("Failed to create class level")
def create_level():
    data = validate(ClassLevelCreate, request_data())
    if scoped(ClassLevel).filter(ClassLevel.sequence == data.sequence).first():
        raise ValidationFailed({"sequence": "Another class level already uses this sequence."})

    level = ClassLevel(school_id=current_school_id(), name=data.name, sequence=data.sequence)
    db.session.add(level)
    db.session.commit()
    return respond("Class level created successfully", 201, class_level=level.to_dict())


@classes_bp.route("/sections", methods=["GET"])
@jwt_required()
@permission_required("class.view_any")
@guarded("Failed to load class sections")
def list_sections():
    page = table_query(scoped(ClassSection), ClassSection, request.args, SECTION_COLUMNS)
    return jsonify(page.to_dict()), 200


@classes_bp.route("/sections", methods=["POST"])
@jwt_required()
@permission_required("class.create")
@guarded("Failed to create class section")
def create_section():
    data = validate(ClassSectionCreate, request_data())
    level = scoped(ClassLevel).filter(ClassLevel.id == data.class_level_id).first()
    if level is None:
        raise ValidationFailed({"class_level_id": "The selected class level is invalid."})

    section = ClassSection(school_id=current_school_id(), class_level_id=level.id, name=data.name)
    db.session.add(section)
    db.session.commit()
    return respond("Class section created successfully", 201, class_section=section.to_dict())
