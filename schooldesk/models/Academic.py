from schooldesk.extensions import db
from utils.serialization import to_dict
from .base import SoftDeleteMixin, TimestampMixin


timetable_sections = db.Table(
    "timetable_sections",
    db.Column("timetable_id", db.Integer, db.ForeignKey("timetables.id"), primary_key=True),
    db.Column("class_section_id", db.Integer, db.ForeignKey("class_sections.id"), primary_key=True),
)


class AcademicSession(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "academic_sessions"
    __search_fields__ = ("name",)

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    is_current = db.Column(db.Boolean, default=False, nullable=False)

    school = db.relationship("School", backref=db.backref("academic_sessions", lazy=True))
    terms = db.relationship("Term", back_populates="academic_session", lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        data = to_dict(self)
        if hasattr(self, "term_count"):
            data["term_count"] = self.term_count
        return data


class Term(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "terms"
    __search_fields__ = ("name", "description")

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    academic_session_id = db.Column(db.Integer, db.ForeignKey("academic_sessions.id"), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(20), default="pending", nullable=False)
    color = db.Column(db.String(20))
    closed_at = db.Column(db.DateTime)

    academic_session = db.relationship("AcademicSession", back_populates="terms")
    timetables = db.relationship("TimeTable", back_populates="term", lazy=True, cascade="all, delete-orphan")

    @property
    def is_active(self):
        return self.status == "active"

    def to_dict(self):
        data = to_dict(self)
        data["academic_session_name"] = self.academic_session.name if self.academic_session else None
        return data


class ClassLevel(db.Model, TimestampMixin):
    __tablename__ = "class_levels"

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    name = db.Column(db.String(80), nullable=False)
    sequence = db.Column(db.Integer, nullable=False, default=1)

    sections = db.relationship("ClassSection", back_populates="class_level", lazy=True)

    def to_dict(self):
        return to_dict(self)


class ClassSection(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "class_sections"

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    class_level_id = db.Column(db.Integer, db.ForeignKey("class_levels.id"), nullable=False)
    name = db.Column(db.String(80), nullable=False)

    class_level = db.relationship("ClassLevel", back_populates="sections")

    @property
    def display_name(self):
        return f"{self.class_level.name} {self.name}" if self.class_level else self.name

    def to_dict(self):
        data = to_dict(self)
        data["display_name"] = self.display_name
        return data


class TimeTable(db.Model, SoftDeleteMixin, TimestampMixin):
    __tablename__ = "timetables"
    __search_fields__ = ("title", "description")

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    term_id = db.Column(db.Integer, db.ForeignKey("terms.id"), nullable=False)
    title = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    effective_date = db.Column(db.Date)
    status = db.Column(db.String(20), default="inactive", nullable=False)

    term = db.relationship("Term", back_populates="timetables")
    sections = db.relationship("ClassSection", secondary=timetable_sections, lazy=True)

    def to_dict(self):
        data = to_dict(self)
        data["term_name"] = self.term.name if self.term else None
        data["section_ids"] = [section.id for section in self.sections]
        return data
