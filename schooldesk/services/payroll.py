from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import or_

from schooldesk.models import SalaryAddon, SalaryStructure

TWO_PLACES = Decimal("0.01")
ADDITIVE_ADDONS = {"bonus", "allowance", "overtime"}


def to_decimal(value):
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def money(value):
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def active_structures(salary, staff, on_date):
    return SalaryStructure.query.filter(
        SalaryStructure.salary_id == salary.id,
        SalaryStructure.department_role == staff.department_role,
        SalaryStructure.effective_date <= on_date,
    ).all()


def active_addons(staff, on_date):
    return SalaryAddon.query.filter(
        SalaryAddon.staff_id == staff.id,
        SalaryAddon.effective_date <= on_date,
        or_(SalaryAddon.recurrence_end_date.is_(None), SalaryAddon.recurrence_end_date >= on_date),
    ).all()


def compute_net_salary(salary, staff, bonus=0, deduction=0, on_date=None):
    """
    Base salary, plus the salary structures for the staff member's department
    role, plus or minus every addon in effect on ``on_date``, plus the one-off
    bonus minus the one-off deduction.
    """
    on_date = on_date or date.today()
    total = to_decimal(salary.base_salary)

    for structure in active_structures(salary, staff, on_date):
        total += to_decimal(structure.amount)

    for addon in active_addons(staff, on_date):
        if addon.type in ADDITIVE_ADDONS:
            total += to_decimal(addon.amount)
        elif addon.type == "deduction":
            total -= to_decimal(addon.amount)

    total += to_decimal(bonus) - to_decimal(deduction)
    return money(total)


def recompute_net_salary(salary, bonus, deduction):
    return money(to_decimal(salary.base_salary) + to_decimal(bonus) - to_decimal(deduction))
