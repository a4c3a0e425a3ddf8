import csv
import io
from datetime import date, datetime
from decimal import Decimal

import pytest

from schooldesk.extensions import db
from schooldesk.models import Expense, Fee, FeeType, Payment, Student
from schooldesk.services.finance import CSV_HEADER, export_filename, iter_csv


@pytest.fixture
def ledger(school):
    student = Student(school_id=school.id, first_name="Ada", last_name="Moyo", admission_number="A1")
    tuition = FeeType(school_id=school.id, name="Tuition")
    fee = Fee(school_id=school.id, fee_type=tuition, name="Term 1 tuition", amount=Decimal("500"),
              created_at=datetime(2025, 2, 1))
    db.session.add_all([student, tuition, fee])
    db.session.flush()
    db.session.add_all([
        Payment(school_id=school.id, student_id=student.id, fee_id=fee.id, installment_amount=Decimal("250"),
                payment_amount=Decimal("250"), payment_status="success", payment_method="card",
                payment_reference="REF-1", payment_date=datetime(2025, 2, 3, 10, 30)),
        Payment(school_id=school.id, student_id=student.id, fee_id=fee.id,
                payment_amount=Decimal("250"), payment_status="pending", payment_method="cash",
                payment_date=datetime(2025, 3, 3, 9, 0)),
        Payment(school_id=school.id, payment_amount=Decimal("99"), payment_status="success",
                payment_date=datetime(2024, 12, 31, 23, 0)),
    ])
    db.session.add(Expense(school_id=school.id, category="Transport", amount=Decimal("80"),
                           expense_date=date(2025, 2, 10)))
    db.session.commit()
    return student


def test_iter_csv_streams_header_first():
    chunks = list(iter_csv([["a", "b"]]))

    assert chunks[0] == ",".join(CSV_HEADER) + "\r\n"
    assert chunks[1] == "a,b\r\n"


def test_export_filename_uses_date():
    assert export_filename(date(2025, 6, 30)) == "financial-report-2025-06-30.csv"


def test_report_summarises_range(client, headers, ledger):
    response = client.get("/finance/report?start_date=2025-01-01&end_date=2025-12-31", headers=headers)

    assert response.status_code == 200
    summary = response.get_json()["summary"]
    assert summary["total_fees"] == "500.00"
    assert summary["fees_by_type"] == {"Tuition": "500.00"}
    assert summary["total_payments"] == "250.00"
    assert summary["payments_by_month"] == {"2025-02": "250.00"}
    assert summary["outstanding_payments"] == "250.00"
    assert summary["total_expenses"] == "80.00"
    assert response.get_json()["payments"]["meta"]["total"] == 2


def test_report_rejects_inverted_range(client, headers):
    response = client.get("/finance/report?start_date=2025-12-31&end_date=2025-01-01", headers=headers)

    assert response.status_code == 422
    assert "end_date" in response.get_json()["errors"]


def test_export_csv(client, headers, ledger, audit_log):
    response = client.get("/finance/report/export?start_date=2025-01-01&end_date=2025-12-31", headers=headers)

    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    assert response.headers["Content-Disposition"].startswith('attachment; filename="financial-report-')

    rows = list(csv.reader(io.StringIO(response.get_data(as_text=True))))
    assert rows[0] == CSV_HEADER
    assert rows[1] == [
        "Ada Moyo", "Term 1 tuition", "250.00", "250.00", "USD", "success", "REF-1",
        "2025-02-03 10:30:00", "N/A",
    ]
    assert rows[2][2] == "N/A"
    assert rows[2][6] == "N/A"
    assert len(rows) == 3
    assert "FINANCE_EXPORT" in audit_log.read_text()


def test_teacher_cannot_export(client, make_user, school, headers_for):
    response = client.get("/finance/report/export", headers=headers_for(make_user("teacher", school)))

    assert response.status_code == 403
