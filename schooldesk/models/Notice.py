from datetime import datetime
from schooldesk.extensions import db
from utils.serialization import to_dict
from .base import SoftDeleteMixin, TimestampMixin


class NoticeRecipient(db.Model):
    __tablename__ = "notice_recipients"

    notice_id = db.Column(db.Integer, db.ForeignKey("notices.id"), primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), primary_key=True)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    read_at = db.Column(db.DateTime)

    notice = db.relationship("Notice", back_populates="recipients")
    user = db.relationship("User")

    def mark_read(self):
        self.is_read = True
        self.read_at = datetime.utcnow()


class Notice(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "notices"
    __search_fields__ = ("title", "content", "type")

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=True, index=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), default="Announcement", nullable=False)
    is_public = db.Column(db.Boolean, default=False, nullable=False)
    published_at = db.Column(db.DateTime, default=datetime.utcnow)

    sender = db.relationship("User")
    recipients = db.relationship(
        "NoticeRecipient", back_populates="notice", lazy=True, cascade="all, delete-orphan"
    )

    def recipient_for(self, user_id):
        for recipient in self.recipients:
            if recipient.user_id == user_id:
                return recipient
        return None

    def to_dict(self, user_id=None):
        data = to_dict(self)
        data["sender_name"] = self.sender.username if self.sender else None
        data["recipient_count"] = len(self.recipients)
        if user_id is not None:
            recipient = self.recipient_for(user_id)
            data["is_read"] = recipient.is_read if recipient else None
        return data
