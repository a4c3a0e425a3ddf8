from schooldesk.extensions import db
from utils.serialization import to_dict
from .base import SoftDeleteMixin, TimestampMixin


class Staff(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = 'staff'
    __search_fields__ = ("first_name", "last_name", "email", "department_role")

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('schools.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    first_name = db.Column(db.String(80), nullable=False)
    last_name = db.Column(db.String(80), nullable=False)
    email = db.Column(db.String(120))
    phone = db.Column(db.String(20))
    department_role = db.Column(db.String(80))

    user = db.relationship('User', backref=db.backref('staff', uselist=False))

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def to_dict(self):
        data = to_dict(self)
        data["full_name"] = self.full_name
        return data
