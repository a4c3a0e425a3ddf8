from schooldesk.extensions import db
from utils.serialization import to_dict
from .base import SoftDeleteMixin, TimestampMixin


class Student(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = 'students'
    __search_fields__ = ("first_name", "last_name", "admission_number")
    __table_args__ = (
        db.UniqueConstraint("school_id", "admission_number", name="uq_students_school_admission"),
    )

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey('schools.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    first_name = db.Column(db.String(80), nullable=False)
    last_name = db.Column(db.String(80), nullable=False)
    admission_number = db.Column(db.String(40), nullable=False)
    gender = db.Column(db.String(10))
    date_of_birth = db.Column(db.Date)

    user = db.relationship('User', backref=db.backref('student', uselist=False))
    enrollments = db.relationship(
        'StudentEnrollment', back_populates='student', lazy=True,
        order_by='StudentEnrollment.id'
    )

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def enrollment_for(self, academic_session_id):
        for enrollment in self.enrollments:
            if enrollment.academic_session_id == academic_session_id:
                return enrollment
        return None

    def to_dict(self, include_related=False):
        data = to_dict(self)
        data["full_name"] = self.full_name
        if include_related:
            data["enrollments"] = [e.to_dict() for e in self.enrollments]
        return data


class StudentEnrollment(db.Model, TimestampMixin):
    __tablename__ = 'student_enrollments'
    __table_args__ = (
        db.UniqueConstraint("student_id", "academic_session_id", name="uq_enrollment_student_session"),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False)
    class_section_id = db.Column(db.Integer, db.ForeignKey('class_sections.id'), nullable=True)
    academic_session_id = db.Column(db.Integer, db.ForeignKey('academic_sessions.id'), nullable=False)
    average_score = db.Column(db.Numeric(5, 2))
    failed_subjects = db.Column(db.Integer, default=0, nullable=False)

    student = db.relationship('Student', back_populates='enrollments')
    class_section = db.relationship('ClassSection')
    academic_session = db.relationship('AcademicSession')

    def to_dict(self):
        data = to_dict(self)
        data["class_section"] = self.class_section.display_name if self.class_section else None
        return data
