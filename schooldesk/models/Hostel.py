from schooldesk.extensions import db
from utils.serialization import to_dict
from .base import SoftDeleteMixin, TimestampMixin


class Hostel(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "hostels"
    __search_fields__ = ("name", "type", "description")

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    warden_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)
    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(20))
    capacity = db.Column(db.Integer)
    description = db.Column(db.Text)

    warden = db.relationship("Staff")

    def to_dict(self):
        data = to_dict(self)
        data["warden_name"] = self.warden.full_name if self.warden else None
        return data
