from datetime import datetime
from schooldesk.extensions import db
from utils.serialization import to_dict
from .base import SoftDeleteMixin, TimestampMixin


class FeeType(db.Model, TimestampMixin):
    __tablename__ = "fee_types"

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)


class Fee(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "fees"

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    fee_type_id = db.Column(db.Integer, db.ForeignKey("fee_types.id"), nullable=True)
    name = db.Column(db.String(120), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    fee_type = db.relationship("FeeType", backref=db.backref("fees", lazy=True))


class Payment(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "payments"
    __search_fields__ = ("payment_reference", "payment_description", "payment_method")

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=True)
    fee_id = db.Column(db.Integer, db.ForeignKey("fees.id"), nullable=True)
    installment_amount = db.Column(db.Numeric(12, 2))
    payment_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    payment_currency = db.Column(db.String(3), default="USD", nullable=False)
    payment_status = db.Column(db.String(20), default="pending", nullable=False)
    payment_method = db.Column(db.String(40))
    payment_reference = db.Column(db.String(80))
    payment_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    payment_description = db.Column(db.Text)

    student = db.relationship("Student")
    fee = db.relationship("Fee")

    def to_dict(self):
        data = to_dict(self)
        data["student_name"] = self.student.full_name if self.student else None
        data["fee_name"] = self.fee.name if self.fee else None
        return data


class Expense(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "expenses"

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    category = db.Column(db.String(80), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    expense_date = db.Column(db.Date, nullable=False)
    description = db.Column(db.Text)
