from datetime import datetime
from schooldesk.extensions import db
from utils.serialization import to_dict


class Notification(db.Model):
    __tablename__ = "notifications"
    __search_fields__ = ("type",)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=True)
    type = db.Column(db.String(80), nullable=False)
    data = db.Column(db.JSON, default=dict)
    read_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user = db.relationship("User", backref=db.backref("notifications", lazy="dynamic"))

    def to_dict(self):
        return to_dict(self)
