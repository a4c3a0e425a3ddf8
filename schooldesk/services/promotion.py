"""
End-of-session student promotion.

A batch is generated for a session with one record per enrolled student and a
recommendation.  The principal approves or rejects it and may override single
decisions.  Executing an approved batch runs :class:`ProcessStudentPromotions`
in the background, which enrolls every student in the following session.
"""
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from schooldesk.extensions import db
from schooldesk.models import (
    AcademicSession, ClassLevel, ClassSection, PromotionBatch, PromotionHistory,
    PromotionStudent, Student, StudentEnrollment,
)
from utils.errors import ValidationFailed
from utils.jobs import Job, JobBatch
from utils.notify import notify, users_with_roles

REPEAT_THRESHOLD = 3
OUTCOMES = {
    "promote": "promoted",
    "probation": "promoted",
    "repeat": "repeated",
    "graduated": "graduated",
}


class NoNextSessionError(RuntimeError):
    pass


def recommend(failed_subjects):
    failed_subjects = failed_subjects or 0
    if failed_subjects >= REPEAT_THRESHOLD:
        return "repeat"
    if failed_subjects >= 1:
        return "probation"
    return "promote"


def next_section_for(section):
    """Returns ``(section, graduating)`` for the class level after ``section``'s."""
    level = section.class_level
    next_level = (
        ClassLevel.query
        .filter(ClassLevel.school_id == level.school_id, ClassLevel.sequence > level.sequence)
        .order_by(ClassLevel.sequence.asc())
        .first()
    )
    if next_level is None:
        return None, True

    sections = ClassSection.query.filter(
        ClassSection.class_level_id == next_level.id,
        ClassSection.deleted.is_(False),
    ).order_by(ClassSection.id).all()
    for candidate in sections:
        if candidate.name == section.name:
            return candidate, False
    return (sections[0] if sections else None), False


def next_session_for(session):
    return (
        AcademicSession.query
        .filter(
            AcademicSession.school_id == session.school_id,
            AcademicSession.deleted.is_(False),
            AcademicSession.start_date > session.end_date,
        )
        .order_by(AcademicSession.start_date.asc())
        .first()
    )


def create_promotion_batch(session):
    existing = PromotionBatch.query.filter_by(academic_session_id=session.id, deleted=False).first()
    if existing:
        return existing, False

    enrollments = (
        StudentEnrollment.query.join(Student)
        .filter(StudentEnrollment.academic_session_id == session.id, Student.deleted.is_(False))
        .order_by(StudentEnrollment.id)
        .all()
    )

    batch = PromotionBatch(
        school_id=session.school_id,
        academic_session_id=session.id,
        name=f"{session.name} Promotions",
        description=f"End of session promotion review for {session.name}",
        status="pending" if enrollments else "completed",
        total_students=len(enrollments),
        processed_students=0,
    )
    db.session.add(batch)

    for enrollment in enrollments:
        section = enrollment.class_section
        next_section = None
        if section is None:
            recommendation = "repeat"
        else:
            recommendation = recommend(enrollment.failed_subjects)
            next_section, graduating = next_section_for(section)
            if graduating and recommendation in ("promote", "probation"):
                recommendation = "graduated"

        db.session.add(PromotionStudent(
            batch=batch,
            student_id=enrollment.student_id,
            current_class_section_id=section.id if section else None,
            next_class_section_id=next_section.id if next_section else None,
            average_score=enrollment.average_score,
            failed_subjects=enrollment.failed_subjects or 0,
            recommendation=recommendation,
        ))

    db.session.flush()
    if enrollments:
        notify(
            users_with_roles(session.school_id, "principal", "admin"),
            "promotion_batch_ready",
            {"batch_id": batch.id, "session": session.name, "students": len(enrollments)},
            school_id=session.school_id,
        )
    current_app.logger.info(
        "Promotion batch %s created for session %s with %d student(s)", batch.id, session.id, len(enrollments)
    )
    return batch, True


def review_stats(batch):
    counts = dict(
        db.session.query(PromotionStudent.recommendation, func.count(PromotionStudent.id))
        .filter(PromotionStudent.promotion_batch_id == batch.id)
        .group_by(PromotionStudent.recommendation)
        .all()
    )
    overridden = PromotionStudent.query.filter(
        PromotionStudent.promotion_batch_id == batch.id,
        PromotionStudent.final_decision.isnot(None),
    ).count()
    stats = {decision: counts.get(decision, 0) for decision in OUTCOMES}
    stats["total"] = batch.total_students
    stats["overridden"] = overridden
    stats["processed"] = batch.processed_students
    return stats


def approve(batch, user, comments=None):
    if batch.status != "pending":
        raise ValidationFailed({"status": "Only pending batches can be approved."})
    batch.status = "approved"
    batch.principal_id = user.id
    batch.principal_reviewed_at = datetime.utcnow()
    batch.principal_comments = comments
    return batch


def reject(batch, user, comments):
    if batch.status != "pending":
        raise ValidationFailed({"status": "Only pending batches can be rejected."})
    batch.status = "rejected"
    batch.principal_id = user.id
    batch.principal_reviewed_at = datetime.utcnow()
    batch.principal_comments = comments
    return batch


def bulk_override(batch, user, student_ids, decision, reason=None):
    if batch.status not in ("pending", "approved"):
        raise ValidationFailed({"status": "Decisions can only be changed before execution."})

    records = PromotionStudent.query.filter(
        PromotionStudent.promotion_batch_id == batch.id,
        PromotionStudent.student_id.in_(student_ids),
    ).all()
    found = {record.student_id for record in records}
    missing = sorted(set(student_ids) - found)
    if missing:
        raise ValidationFailed({"student_ids": f"Students not in this batch: {', '.join(map(str, missing))}"})

    for record in records:
        record.final_decision = decision
        record.override_reason = reason
        record.overridden_by = user.id
    return len(records)


def promote_student(batch, record, next_session, processed_by=None):
    decision = record.decision
    if decision in ("promote", "probation"):
        target_section_id = record.next_class_section_id
    elif decision == "repeat":
        target_section_id = record.current_class_section_id
    else:
        target_section_id = None

    if next_session is None and decision != "graduated":
        raise NoNextSessionError(f"No academic session follows session {batch.academic_session_id}")

    if decision != "graduated":
        enrollment = StudentEnrollment.query.filter_by(
            student_id=record.student_id, academic_session_id=next_session.id
        ).first()
        if enrollment is None:
            enrollment = StudentEnrollment(student_id=record.student_id, academic_session_id=next_session.id)
            db.session.add(enrollment)
        enrollment.class_section_id = target_section_id

    db.session.add(PromotionHistory(
        student_id=record.student_id,
        promotion_batch_id=batch.id,
        from_class_section_id=record.current_class_section_id,
        to_class_section_id=target_section_id,
        from_academic_session_id=batch.academic_session_id,
        to_academic_session_id=next_session.id if next_session else None,
        outcome=OUTCOMES[decision],
        processed_by=processed_by,
    ))

    record.is_processed = True
    record.processed_at = datetime.utcnow()
    PromotionBatch.query.filter(PromotionBatch.id == batch.id).update(
        {PromotionBatch.processed_students: PromotionBatch.processed_students + 1},
        synchronize_session=False,
    )


class ProcessStudentPromotions(Job):
    tries = 3
    backoff = (10, 30, 60)

    def __init__(self, batch_id, processed_by=None):
        self.batch_id = batch_id
        self.processed_by = processed_by

    def handle(self):
        batch = db.session.get(PromotionBatch, self.batch_id)
        next_session = next_session_for(batch.academic_session)
        pending = (
            PromotionStudent.query
            .filter_by(promotion_batch_id=batch.id, is_processed=False)
            .order_by(PromotionStudent.id)
            .all()
        )
        for record in pending:
            promote_student(batch, record, next_session, self.processed_by)
            db.session.commit()

    def failed(self, exc):
        current_app.logger.error("Promotion batch %s failed: %s", self.batch_id, exc)


def execute(batch, user):
    if not batch.can_execute:
        raise ValidationFailed({"status": "This batch cannot be executed."})

    batch.status = "executing"
    db.session.commit()
    batch_id = batch.id

    def completed():
        finished = db.session.get(PromotionBatch, batch_id)
        finished.status = "completed"
        finished.executed_at = datetime.utcnow()
        recipients = [finished.principal] if finished.principal else users_with_roles(finished.school_id, "admin")
        notify(recipients, "promotion_batch_completed", {"batch_id": batch_id}, school_id=finished.school_id)
        db.session.commit()

    def failed(exc):
        db.session.rollback()
        broken = db.session.get(PromotionBatch, batch_id)
        broken.status = "failed"
        db.session.commit()

    return (
        JobBatch([ProcessStudentPromotions(batch_id, user.id)], name=f"promotion-batch-{batch_id}")
        .then(completed)
        .catch(failed)
        .dispatch()
    )
