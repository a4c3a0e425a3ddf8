from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import jwt_required
from sqlalchemy import func
from schooldesk.extensions import db
from schooldesk.models import Student, StudentEnrollment, ClassSection
from schooldesk.schemas.people import StudentCreate, StudentPatch, EnrollmentScores
from schooldesk.services.academic import current_session
from utils.access_control import scoped, get_scoped_or_404, current_school_id
from utils.bulk import school_ids, soft_delete_many, restore_many
from utils.decorators import permission_required
from utils.errors import guarded, validate, ValidationFailed
from utils.responses import wants_json, render_page, respond, request_data
from utils.table_query import table_query

students_bp = Blueprint("students", __name__)

STUDENT_COLUMNS = [
    {"field": "class_section", "relation": "enrollments.class_section", "related_field": "name",
     "sortable": False, "header": "Class Section"},
    {"field": "gender", "filter_type": "in", "options": ["male", "female", "other"]},
]


def _check_admission_number(admission_number, student_id=None):
    query = scoped(Student).filter(Student.admission_number == admission_number)
    if student_id:
        query = query.filter(Student.id != student_id)
    if query.first():
        raise ValidationFailed({"admission_number": "This admission number is already taken."})


def _enroll(student, class_section_id):
    session = current_session(current_school_id())
    if session is None:
        raise ValidationFailed({"class_section_id": "No current academic session to enroll into."})

    section = scoped(ClassSection).filter(
        ClassSection.id == class_section_id, ClassSection.deleted.is_(False)
    ).first()
    if section is None:
        raise ValidationFailed({"class_section_id": "The selected class section is invalid."})

    enrollment = student.enrollment_for(session.id)
    if enrollment is None:
        enrollment = StudentEnrollment(student=student, academic_session_id=session.id)
        db.session.add(enrollment)
    enrollment.class_section_id = section.id
    return enrollment


@students_bp.route("/", methods=["GET"])
@jwt_required()
@permission_required("student.view_any")
@guarded("Failed to load students")
def index():
    payload = table_query(scoped(Student), Student, request.args, STUDENT_COLUMNS).to_dict()
    if wants_json():
        return jsonify(payload), 200
    return render_page("Students/Index", {"students": payload, "filters": request.args.to_dict()})


@students_bp.route("/", methods=["POST"])
@jwt_required()
@permission_required("student.create")
@guarded("Failed to create student", redirect_to="students.index")
def store():
    data = validate(StudentCreate, request_data())
    _check_admission_number(data.admission_number)

    student = Student(
        school_id=current_school_id(),
        first_name=data.first_name,
        last_name=data.last_name,
        admission_number=data.admission_number,
        gender=data.gender,
        date_of_birth=data.date_of_birth,
    )
    db.session.add(student)
    db.session.flush()
    if data.class_section_id:
        _enroll(student, data.class_section_id)
    db.session.commit()

    current_app.logger.info("Student %s created by user %s", student.id, g.current_user.id)
    return respond("Student created successfully", 201, "students.index", student=student.to_dict())


@students_bp.route("/<int:student_id>", methods=["GET"])
@jwt_required()
@permission_required("student.view")
def show(student_id):
    student = get_scoped_or_404(Student, student_id, with_trashed=True)
    data = student.to_dict(include_related=True)
    if wants_json():
        return jsonify(data), 200
    return render_page("Students/Show", {"student": data})


@students_bp.route("/<int:student_id>", methods=["PUT", "PATCH"])
@jwt_required()
@permission_required("student.update")
@guarded("Failed to update student", redirect_to="students.index")
def update(student_id):
    student = get_scoped_or_404(Student, student_id)
    data = validate(StudentPatch, request_data()).model_dump(exclude_unset=True)
    class_section_id = data.pop("class_section_id", None)

    if "admission_number" in data:
        _check_admission_number(data["admission_number"], student.id)
    for field, value in data.items():
        setattr(student, field, value)
    if class_section_id:
        _enroll(student, class_section_id)
    db.session.commit()

    return respond("Student updated successfully", 200, "students.index", student=student.to_dict())


@students_bp.route("/<int:student_id>/scores", methods=["PUT"])
@jwt_required()
@permission_required("student.update")
@guarded("Failed to record student scores", redirect_to="students.index")
def record_scores(student_id):
    student = get_scoped_or_404(Student, student_id)
    data = validate(EnrollmentScores, request_data())

    session = current_session(current_school_id())
    enrollment = student.enrollment_for(session.id) if session else None
    if enrollment is None:
        raise ValidationFailed({"student": "The student is not enrolled in the current session."})

    enrollment.average_score = data.average_score
    enrollment.failed_subjects = data.failed_subjects
    db.session.commit()
    return respond("Scores recorded successfully", 200, "students.index", enrollment=enrollment.to_dict())


@students_bp.route("/stats", methods=["GET"])
@jwt_required()
@permission_required("student.view_any")
def stats():
    by_gender = (
        scoped(Student)
        .filter(Student.deleted.is_(False))
        .with_entities(Student.gender, func.count(Student.id))
        .group_by(Student.gender)
        .all()
    )
    return jsonify({
        "total": sum(count for _, count in by_gender),
        "by_gender": {str(gender or "unspecified"): count for gender, count in by_gender},
    }), 200


@students_bp.route("/", methods=["DELETE"])
@jwt_required()
@permission_required("student.delete")
@guarded("Failed to delete students", redirect_to="students.index")
def destroy():
    payload = school_ids(Student, request_data())
    records = soft_delete_many(Student, payload.ids)
    db.session.commit()
    return respond(f"{len(records)} student(s) deleted successfully", 200, "students.index")


@students_bp.route("/restore", methods=["POST"])
@jwt_required()
@permission_required("student.restore")
@guarded("Failed to restore students", redirect_to="students.index")
def restore():
    payload = school_ids(Student, request_data())
    records = restore_many(Student, payload.ids)
    db.session.commit()
    return respond(f"{len(records)} student(s) restored successfully", 200, "students.index")
