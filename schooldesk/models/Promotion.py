from schooldesk.extensions import db
from utils.serialization import to_dict
from .base import SoftDeleteMixin, TimestampMixin


class PromotionBatch(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "promotion_batches"
    __search_fields__ = ("name", "description", "status")

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    academic_session_id = db.Column(db.Integer, db.ForeignKey("academic_sessions.id"), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    status = db.Column(db.String(20), default="pending", nullable=False)
    principal_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    principal_reviewed_at = db.Column(db.DateTime)
    principal_comments = db.Column(db.Text)
    executed_at = db.Column(db.DateTime)
    total_students = db.Column(db.Integer, default=0, nullable=False)
    processed_students = db.Column(db.Integer, default=0, nullable=False)

    academic_session = db.relationship("AcademicSession")
    principal = db.relationship("User")
    students = db.relationship(
        "PromotionStudent", back_populates="batch", lazy=True, order_by="PromotionStudent.id"
    )

    @property
    def progress_percentage(self):
        if not self.total_students:
            return 0
        return round(self.processed_students / self.total_students * 100, 2)

    @property
    def can_execute(self):
        return self.status == "approved" and self.processed_students == 0

    def to_dict(self):
        data = to_dict(self)
        data["academic_session_name"] = self.academic_session.name if self.academic_session else None
        data["principal_name"] = self.principal.username if self.principal else None
        data["progress_percentage"] = self.progress_percentage
        data["can_execute"] = self.can_execute
        return data


class PromotionStudent(db.Model, TimestampMixin):
    __tablename__ = "promotion_students"
    __table_args__ = (
        db.UniqueConstraint("promotion_batch_id", "student_id", name="uq_promotion_batch_student"),
    )

    id = db.Column(db.Integer, primary_key=True)
    promotion_batch_id = db.Column(db.Integer, db.ForeignKey("promotion_batches.id"), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False)
    current_class_section_id = db.Column(db.Integer, db.ForeignKey("class_sections.id"), nullable=True)
    next_class_section_id = db.Column(db.Integer, db.ForeignKey("class_sections.id"), nullable=True)
    average_score = db.Column(db.Numeric(5, 2))
    failed_subjects = db.Column(db.Integer, default=0, nullable=False)
    recommendation = db.Column(db.String(20), nullable=False)
    final_decision = db.Column(db.String(20))
    override_reason = db.Column(db.String(500))
    overridden_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    is_processed = db.Column(db.Boolean, default=False, nullable=False)
    processed_at = db.Column(db.DateTime)

    batch = db.relationship("PromotionBatch", back_populates="students")
    student = db.relationship("Student")
    current_class_section = db.relationship("ClassSection", foreign_keys=[current_class_section_id])
    next_class_section = db.relationship("ClassSection", foreign_keys=[next_class_section_id])

    @property
    def decision(self):
        return self.final_decision or self.recommendation

    def to_dict(self):
        data = to_dict(self)
        data["student_name"] = self.student.full_name if self.student else None
        data["current_class_section"] = (
            self.current_class_section.display_name if self.current_class_section else None
        )
        data["next_class_section"] = (
            self.next_class_section.display_name if self.next_class_section else None
        )
        data["decision"] = self.decision
        return data


class PromotionHistory(db.Model, TimestampMixin):
    __tablename__ = "promotion_histories"

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False, index=True)
    promotion_batch_id = db.Column(db.Integer, db.ForeignKey("promotion_batches.id"), nullable=False)
    from_class_section_id = db.Column(db.Integer, db.ForeignKey("class_sections.id"), nullable=True)
    to_class_section_id = db.Column(db.Integer, db.ForeignKey("class_sections.id"), nullable=True)
    from_academic_session_id = db.Column(db.Integer, db.ForeignKey("academic_sessions.id"), nullable=False)
    to_academic_session_id = db.Column(db.Integer, db.ForeignKey("academic_sessions.id"), nullable=True)
    outcome = db.Column(db.String(20), nullable=False)
    processed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    def to_dict(self):
        return to_dict(self)
