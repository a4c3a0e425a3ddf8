from datetime import datetime
from schooldesk.extensions import db


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SoftDeleteMixin:
    deleted = db.Column(db.Boolean, default=False, nullable=False, index=True)
    deleted_at = db.Column(db.DateTime)

    def soft_delete(self):
        self.deleted = True
        self.deleted_at = datetime.utcnow()

    def restore(self):
        self.deleted = False
        self.deleted_at = None

    @property
    def trashed(self):
        return bool(self.deleted)


TERM_STATUSES = ("pending", "active", "closed")
TIMETABLE_STATUSES = ("active", "inactive")
PAYROLL_STATUSES = ("unpaid", "paid")
ADDON_TYPES = ("bonus", "allowance", "overtime", "deduction")
NOTICE_TYPES = ("Announcement", "Alert", "Reminder")
PAYMENT_STATUSES = ("pending", "success", "failed")
PROMOTION_STATUSES = ("pending", "approved", "rejected", "executing", "completed", "failed")
PROMOTION_DECISIONS = ("promote", "repeat", "probation", "graduated")
