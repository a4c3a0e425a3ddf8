from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import jwt_required
from schooldesk.extensions import db
from schooldesk.models import Payroll, Salary, SalaryAddon, SalaryStructure, Staff, PAYROLL_STATUSES
from schooldesk.schemas.payroll import (
    PayrollCreate, PayrollPatch, SalaryCreate, SalaryStructureCreate, SalaryAddonCreate,
)
from schooldesk.services.payroll import compute_net_salary, recompute_net_salary, money
from utils.access_control import scoped, get_scoped_or_404, current_school_id
from utils.audit import log_event
from utils.bulk import school_ids, soft_delete_many, restore_many
from utils.decorators import permission_required
from utils.errors import guarded, validate, ValidationFailed
from utils.notify import notify, users_with_roles
from utils.responses import wants_json, render_page, respond, request_data
from utils.table_query import table_query

payrolls_bp = Blueprint("payrolls", __name__)

PAYROLL_COLUMNS = [
    {"field": "staff_name", "relation": "staff", "related_field": "last_name", "header": "Staff"},
    {"field": "salary_name", "relation": "salary", "related_field": "name", "header": "Salary"},
    {"field": "status", "filter_type": "in", "options": list(PAYROLL_STATUSES)},
]


def _staff_in_school(staff_id, field="staff_id"):
    staff = scoped(Staff).filter(Staff.id == staff_id, Staff.deleted.is_(False)).first()
    if staff is None:
        raise ValidationFailed({field: "The selected staff member is invalid."})
    return staff


def _salary_in_school(salary_id):
    salary = scoped(Salary).filter(Salary.id == salary_id, Salary.deleted.is_(False)).first()
    if salary is None:
        raise ValidationFailed({"salary_id": "The selected salary is invalid."})
    return salary


@payrolls_bp.route("/", methods=["GET"])
@jwt_required()
@permission_required("payroll.view_any")
@guarded("Failed to load payrolls")
def index():
    payload = table_query(scoped(Payroll), Payroll, request.args, PAYROLL_COLUMNS).to_dict()
    if wants_json():
        return jsonify(payload), 200
    return render_page("Payroll/Index", {"payrolls": payload, "filters": request.args.to_dict()})


@payrolls_bp.route("/", methods=["POST"])
@jwt_required()
@permission_required("payroll.create")
@guarded("Failed to create payroll", redirect_to="payrolls.index")
def store():
    data = validate(PayrollCreate, request_data())
    staff = _staff_in_school(data.staff_id)
    salary = _salary_in_school(data.salary_id)

    payroll = Payroll(
        school_id=current_school_id(),
        staff_id=staff.id,
        salary_id=salary.id,
        bonus=money(data.bonus),
        deduction=money(data.deduction),
        net_salary=compute_net_salary(salary, staff, data.bonus, data.deduction),
        payment_date=data.payment_date,
        description=data.description,
        status="unpaid",
    )
    db.session.add(payroll)
    db.session.flush()

    notify(
        users_with_roles(current_school_id(), "admin", "accountant"),
        "payroll_created",
        {"payroll_id": payroll.id, "staff": staff.full_name, "net_salary": str(payroll.net_salary)},
    )
    db.session.commit()

    current_app.logger.info("Payroll %s created for staff %s", payroll.id, staff.id)
    return respond("Payroll created successfully", 201, "payrolls.index", payroll=payroll.to_dict())


@payrolls_bp.route("/<int:payroll_id>", methods=["GET"])
@jwt_required()
@permission_required("payroll.view")
def show(payroll_id):
    payroll = get_scoped_or_404(Payroll, payroll_id, with_trashed=True)
    data = payroll.to_dict()
    if wants_json():
        return jsonify(data), 200
    return render_page("Payroll/Show", {"payroll": data})


@payrolls_bp.route("/<int:payroll_id>", methods=["PUT", "PATCH"])
@jwt_required()
@permission_required("payroll.update")
@guarded("Failed to update payroll", redirect_to="payrolls.index")
def update(payroll_id):
    payroll = get_scoped_or_404(Payroll, payroll_id)
    data = validate(PayrollPatch, request_data()).model_dump(exclude_unset=True)

    if "salary_id" in data:
        payroll.salary_id = _salary_in_school(data["salary_id"]).id
    for field in ("payment_date", "description"):
        if field in data:
            setattr(payroll, field, data[field])
    for field in ("bonus", "deduction"):
        if data.get(field) is not None:
            setattr(payroll, field, money(data[field]))

    if all(data.get(field) is not None for field in ("salary_id", "bonus", "deduction")):
        salary = db.session.get(Salary, payroll.salary_id)
        payroll.net_salary = recompute_net_salary(salary, data["bonus"], data["deduction"])
    db.session.commit()

    return respond("Payroll updated successfully", 200, "payrolls.index", payroll=payroll.to_dict())


@payrolls_bp.route("/<int:payroll_id>/mark-paid", methods=["POST"])
@jwt_required()
@permission_required("payroll.pay")
@guarded("Failed to mark payroll as paid", redirect_to="payrolls.index")
def mark_as_paid(payroll_id):
    payroll = get_scoped_or_404(Payroll, payroll_id)
    if payroll.status == "paid":
        raise ValidationFailed({"status": "This payroll has already been paid."})

    payroll.mark_paid()
    if payroll.staff and payroll.staff.user:
        notify(
            [payroll.staff.user],
            "payroll_paid",
            {"payroll_id": payroll.id, "net_salary": str(payroll.net_salary)},
        )
    db.session.commit()

    log_event(
        "PAYROLL_PAID", user_id=g.current_user.id, ip=request.remote_addr,
        description=f"Payroll {payroll.id} paid ({payroll.net_salary})",
    )
    return respond("Payroll marked as paid", 200, "payrolls.index", payroll=payroll.to_dict())


@payrolls_bp.route("/", methods=["DELETE"])
@jwt_required()
@permission_required("payroll.delete")
@guarded("Failed to delete payrolls", redirect_to="payrolls.index")
def destroy():
    payload = school_ids(Payroll, request_data())
    records = soft_delete_many(Payroll, payload.ids)
    db.session.commit()
    return respond(f"{len(records)} payroll(s) deleted successfully", 200, "payrolls.index")


@payrolls_bp.route("/restore", methods=["POST"])
@jwt_required()
@permission_required("payroll.restore")
@guarded("Failed to restore payrolls", redirect_to="payrolls.index")
def restore():
    payload = school_ids(Payroll, request_data())
    records = restore_many(Payroll, payload.ids)
    db.session.commit()
    return respond(f"{len(records)} payroll(s) restored successfully", 200, "payrolls.index")


@payrolls_bp.route("/salaries", methods=["GET"])
@jwt_required()
@permission_required("payroll.view_any")
@guarded("Failed to load salaries")
def list_salaries():
    return jsonify(table_query(scoped(Salary), Salary, request.args).to_dict()), 200


@payrolls_bp.route("/salaries", methods=["POST"])
@jwt_required()
@permission_required("payroll.create")
@guarded("Failed to create salary")
def create_salary():
    data = validate(SalaryCreate, request_data())
    salary = Salary(school_id=current_school_id(), **data.model_dump())
    db.session.add(salary)
    db.session.commit()
    return respond("Salary created successfully", 201, salary=salary.to_dict())


@payrolls_bp.route("/salary-structures", methods=["POST"])
@jwt_required()
@permission_required("payroll.create")
@guarded("Failed to create salary structure")
def create_structure():
    data = validate(SalaryStructureCreate, request_data())
    _salary_in_school(data.salary_id)
    structure = SalaryStructure(school_id=current_school_id(), **data.model_dump())
    db.session.add(structure)
    db.session.commit()
    return respond("Salary structure created successfully", 201, salary_structure_id=structure.id)


@payrolls_bp.route("/addons", methods=["POST"])
@jwt_required()
@permission_required("payroll.create")
@guarded("Failed to create salary addon")
def create_addon():
    data = validate(SalaryAddonCreate, request_data())
    _staff_in_school(data.staff_id)
    addon = SalaryAddon(school_id=current_school_id(), **data.model_dump())
    db.session.add(addon)
    db.session.commit()
    return respond("Salary addon created successfully", 201, salary_addon_id=addon.id)
