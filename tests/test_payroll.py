from datetime import date
from decimal import Decimal

import pytest

from schooldesk.extensions import db
from schooldesk.models import Notification, Payroll, Salary, SalaryAddon, SalaryStructure
from schooldesk.services.payroll import compute_net_salary, money


@pytest.fixture
def accountant_headers(make_user, school, headers_for):
    return headers_for(make_user("accountant", school))


@pytest.fixture
def salary(school):
    salary = Salary(school_id=school.id, name="Teacher grade 1", base_salary=Decimal("1000.00"))
    db.session.add(salary)
    db.session.commit()
    return salary


def test_money_rounds_half_up():
    assert money("10.005") == Decimal("10.01")
    assert money(None) == Decimal("0.00")


def test_net_salary_adds_structures_and_addons(app, school, salary, make_staff):
    staff = make_staff(department_role="teacher")
    db.session.add_all([
        SalaryStructure(school_id=school.id, salary_id=salary.id, department_role="teacher",
                        amount=Decimal("200"), effective_date=date(2025, 1, 1)),
        SalaryStructure(school_id=school.id, salary_id=salary.id, department_role="driver",
                        amount=Decimal("999"), effective_date=date(2025, 1, 1)),
        SalaryAddon(school_id=school.id, staff_id=staff.id, type="allowance",
                    amount=Decimal("50"), effective_date=date(2025, 1, 1)),
        SalaryAddon(school_id=school.id, staff_id=staff.id, type="deduction",
                    amount=Decimal("30"), effective_date=date(2025, 1, 1)),
        SalaryAddon(school_id=school.id, staff_id=staff.id, type="bonus", amount=Decimal("500"),
                    effective_date=date(2024, 1, 1), recurrence_end_date=date(2024, 12, 31)),
    ])
    db.session.commit()

    net = compute_net_salary(salary, staff, bonus=Decimal("100"), deduction=Decimal("20"), on_date=date(2025, 6, 1))

    assert net == Decimal("1300.00")


def test_future_structures_are_ignored(app, school, salary, make_staff):
    staff = make_staff(department_role="teacher")
    db.session.add(SalaryStructure(school_id=school.id, salary_id=salary.id, department_role="teacher",
                                   amount=Decimal("200"), effective_date=date(2030, 1, 1)))
    db.session.commit()

    assert compute_net_salary(salary, staff, on_date=date(2025, 6, 1)) == Decimal("1000.00")


def test_store_payroll_computes_net_and_notifies(client, accountant_headers, admin, salary, make_staff):
    staff = make_staff()

    response = client.post("/payrolls/", json={
        "staff_id": staff.id, "salary_id": salary.id, "bonus": "150.50", "deduction": "50",
        "payment_date": "2025-06-30",
    }, headers=accountant_headers)

    assert response.status_code == 201
    payroll = response.get_json()["payroll"]
    assert payroll["net_salary"] == "1100.50"
    assert payroll["status"] == "unpaid"
    assert payroll["staff_name"] == "Grace Ndlovu"
    assert Notification.query.filter_by(user_id=admin.id, type="payroll_created").count() == 1


def test_update_recomputes_only_with_full_figures(client, accountant_headers, salary, make_staff):
    staff = make_staff()
    payroll_id = client.post("/payrolls/", json={
        "staff_id": staff.id, "salary_id": salary.id, "payment_date": "2025-06-30",
    }, headers=accountant_headers).get_json()["payroll"]["id"]

    partial = client.patch(f"/payrolls/{payroll_id}", json={"bonus": "10"}, headers=accountant_headers)
    assert partial.get_json()["payroll"]["net_salary"] == "1000.00"

    full = client.patch(f"/payrolls/{payroll_id}", json={
        "salary_id": salary.id, "bonus": "10", "deduction": "5",
    }, headers=accountant_headers)
    assert full.get_json()["payroll"]["net_salary"] == "1005.00"


def test_mark_paid_once(client, accountant_headers, salary, make_staff, audit_log):
    staff = make_staff()
    payroll_id = client.post("/payrolls/", json={
        "staff_id": staff.id, "salary_id": salary.id, "payment_date": "2025-06-30",
    }, headers=accountant_headers).get_json()["payroll"]["id"]

    paid = client.post(f"/payrolls/{payroll_id}/mark-paid", headers=accountant_headers)
    assert paid.status_code == 200
    assert paid.get_json()["payroll"]["status"] == "paid"
    assert "PAYROLL_PAID" in audit_log.read_text()

    again = client.post(f"/payrolls/{payroll_id}/mark-paid", headers=accountant_headers)
    assert again.status_code == 422


def test_payroll_rejects_staff_of_other_school(client, accountant_headers, salary, make_school, make_staff):
    foreign = make_staff(owner=make_school("Other"))

    response = client.post("/payrolls/", json={
        "staff_id": foreign.id, "salary_id": salary.id, "payment_date": "2025-06-30",
    }, headers=accountant_headers)

    assert response.status_code == 422
    assert Payroll.query.count() == 0


def test_teacher_cannot_create_payroll(client, make_user, school, headers_for, salary, make_staff):
    staff = make_staff()
    teacher = make_user("teacher", school)

    response = client.post("/payrolls/", json={
        "staff_id": staff.id, "salary_id": salary.id, "payment_date": "2025-06-30",
    }, headers=headers_for(teacher))

    assert response.status_code == 403
