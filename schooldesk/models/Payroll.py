from datetime import datetime
from schooldesk.extensions import db
from utils.serialization import to_dict
from .base import SoftDeleteMixin, TimestampMixin


class Salary(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "salaries"

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    base_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    description = db.Column(db.Text)

    structures = db.relationship("SalaryStructure", back_populates="salary", lazy=True)

    def to_dict(self):
        return to_dict(self)


class SalaryStructure(db.Model, TimestampMixin):
    __tablename__ = "salary_structures"

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    salary_id = db.Column(db.Integer, db.ForeignKey("salaries.id"), nullable=False)
    department_role = db.Column(db.String(80), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    effective_date = db.Column(db.Date, nullable=False)

    salary = db.relationship("Salary", back_populates="structures")


class SalaryAddon(db.Model, TimestampMixin):
    __tablename__ = "salary_addons"

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=False)
    type = db.Column(db.String(20), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    effective_date = db.Column(db.Date, nullable=False)
    recurrence_end_date = db.Column(db.Date)

    staff = db.relationship("Staff", backref=db.backref("salary_addons", lazy=True))


class Payroll(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "payrolls"
    __search_fields__ = ("description", "status")

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=False)
    salary_id = db.Column(db.Integer, db.ForeignKey("salaries.id"), nullable=False)
    bonus = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    deduction = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    net_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    payment_date = db.Column(db.Date, nullable=False)
    description = db.Column(db.Text)
    status = db.Column(db.String(20), default="unpaid", nullable=False)
    paid_at = db.Column(db.DateTime)

    staff = db.relationship("Staff", backref=db.backref("payrolls", lazy=True))
    salary = db.relationship("Salary")

    def mark_paid(self):
        self.status = "paid"
        self.paid_at = datetime.utcnow()

    def to_dict(self):
        data = to_dict(self)
        data["staff_name"] = self.staff.full_name if self.staff else None
        data["salary_name"] = self.salary.name if self.salary else None
        return data
