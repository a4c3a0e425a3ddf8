import csv
import io
from collections import OrderedDict
from datetime import date, datetime, time
from decimal import Decimal

from schooldesk.models import Expense, Fee, Payment
from schooldesk.services.payroll import money
from utils.errors import ValidationFailed

CSV_HEADER = [
    "Student", "Fee", "Installment Amount", "Payment Amount", "Currency",
    "Status", "Reference", "Date", "Description",
]


def _parse_date(value, field):
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationFailed({field: "Must be a date in YYYY-MM-DD format."})


def report_range(args):
    """Date range from request args; defaults to the start of the year through today."""
    today = date.today()
    start = _parse_date(args["start_date"], "start_date") if args.get("start_date") else date(today.year, 1, 1)
    end = _parse_date(args["end_date"], "end_date") if args.get("end_date") else today
    if end < start:
        raise ValidationFailed({"end_date": "The end date must be on or after the start date."})
    return start, end


def _bounds(start, end):
    return datetime.combine(start, time.min), datetime.combine(end, time.max)


def payments_query(school_id, start, end):
    start_at, end_at = _bounds(start, end)
    return Payment.query.filter(
        Payment.school_id == school_id,
        Payment.payment_date.between(start_at, end_at),
    )


def _total(values):
    return money(sum((Decimal(value or 0) for value in values), Decimal("0")))


def _grouped(rows, key, amount):
    groups = OrderedDict()
    for row in rows:
        name = key(row) or "Uncategorized"
        groups[name] = groups.get(name, Decimal("0")) + Decimal(amount(row) or 0)
    return {name: str(money(value)) for name, value in groups.items()}


def financial_summary(school_id, start, end):
    start_at, end_at = _bounds(start, end)

    fees = Fee.query.filter(
        Fee.school_id == school_id,
        Fee.deleted.is_(False),
        Fee.created_at.between(start_at, end_at),
    ).all()
    payments = (
        payments_query(school_id, start, end)
        .filter(Payment.deleted.is_(False))
        .order_by(Payment.payment_date.asc(), Payment.id.asc())
        .all()
    )
    expenses = Expense.query.filter(
        Expense.school_id == school_id,
        Expense.deleted.is_(False),
        Expense.expense_date.between(start, end),
    ).all()

    successful = [p for p in payments if p.payment_status == "success"]
    pending = [p for p in payments if p.payment_status == "pending"]
    failed = [p for p in payments if p.payment_status == "failed"]

    return {
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "total_fees": str(_total(f.amount for f in fees)),
        "fees_by_type": _grouped(fees, lambda f: f.fee_type.name if f.fee_type else None, lambda f: f.amount),
        "total_payments": str(_total(p.payment_amount for p in successful)),
        "payments_by_month": _grouped(
            successful, lambda p: p.payment_date.strftime("%Y-%m"), lambda p: p.payment_amount
        ),
        "payments_by_method": _grouped(successful, lambda p: p.payment_method, lambda p: p.payment_amount),
        "outstanding_payments": str(_total(p.payment_amount for p in pending)),
        "failed_payments": str(_total(p.payment_amount for p in failed)),
        "total_expenses": str(_total(e.amount for e in expenses)),
        "expenses_by_category": _grouped(expenses, lambda e: e.category, lambda e: e.amount),
    }


def _cell(value):
    if value is None or value == "":
        return "N/A"
    if isinstance(value, Decimal):
        return str(money(value))
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return value


def payment_row(payment):
    return [
        _cell(payment.student.full_name if payment.student else None),
        _cell(payment.fee.name if payment.fee else None),
        _cell(payment.installment_amount),
        _cell(payment.payment_amount),
        _cell(payment.payment_currency),
        _cell(payment.payment_status),
        _cell(payment.payment_reference),
        _cell(payment.payment_date),
        _cell(payment.payment_description),
    ]


def iter_csv(rows):
    """Yield the export one line at a time."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow(CSV_HEADER)
    yield buffer.getvalue()
    for row in rows:
        buffer.seek(0)
        buffer.truncate(0)
        writer.writerow(row)
        yield buffer.getvalue()


def export_filename(on_date=None):
    return f"financial-report-{(on_date or date.today()).isoformat()}.csv"
