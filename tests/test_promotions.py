from datetime import date
from decimal import Decimal

import pytest

from schooldesk.extensions import db
from schooldesk.models import (
    ClassLevel, ClassSection, PromotionBatch, PromotionHistory, PromotionStudent, Student, StudentEnrollment,
)
from schooldesk.services.promotion import create_promotion_batch, recommend


@pytest.fixture
def levels(school):
    lower = ClassLevel(school_id=school.id, name="Grade 8", sequence=1)
    upper = ClassLevel(school_id=school.id, name="Grade 9", sequence=2)
    sections = {
        "8A": ClassSection(school_id=school.id, class_level=lower, name="A"),
        "9A": ClassSection(school_id=school.id, class_level=upper, name="A"),
        "9B": ClassSection(school_id=school.id, class_level=upper, name="B"),
    }
    db.session.add_all([lower, upper, *sections.values()])
    db.session.commit()
    return sections


@pytest.fixture
def sessions(make_session):
    current = make_session("2025", is_current=True)
    following = make_session("2026", date(2026, 1, 12), date(2026, 12, 4))
    return current, following


def _enroll(school, session, section, admission_number, failed_subjects=0, score="70"):
    student = Student(school_id=school.id, first_name="Student", last_name=admission_number,
                      admission_number=admission_number)
    db.session.add(student)
    db.session.flush()
    db.session.add(StudentEnrollment(
        student_id=student.id, academic_session_id=session.id, class_section_id=section.id,
        average_score=Decimal(score), failed_subjects=failed_subjects,
    ))
    db.session.commit()
    return student


@pytest.fixture
def principal_headers(make_user, school, headers_for):
    return headers_for(make_user("principal", school))


def test_recommendation_thresholds():
    assert recommend(0) == "promote"
    assert recommend(None) == "promote"
    assert recommend(1) == "probation"
    assert recommend(2) == "probation"
    assert recommend(3) == "repeat"


def test_batch_recommendations(app, school, levels, sessions):
    current, _ = sessions
    passing = _enroll(school, current, levels["8A"], "P1")
    failing = _enroll(school, current, levels["8A"], "F1", failed_subjects=4)
    leaving = _enroll(school, current, levels["9B"], "G1")

    batch, created = create_promotion_batch(current)
    db.session.commit()

    assert created is True
    assert batch.total_students == 3
    records = {r.student_id: r for r in batch.students}
    assert records[passing.id].recommendation == "promote"
    assert records[passing.id].next_class_section_id == levels["9A"].id
    assert records[failing.id].recommendation == "repeat"
    assert records[leaving.id].recommendation == "graduated"

    again, created_again = create_promotion_batch(current)
    assert created_again is False
    assert again.id == batch.id


def test_generate_endpoint_conflicts_when_batch_exists(client, principal_headers, school, levels, sessions):
    current, _ = sessions
    _enroll(school, current, levels["8A"], "P1")

    first = client.post(f"/promotions/sessions/{current.id}/generate", headers=principal_headers)
    second = client.post(f"/promotions/sessions/{current.id}/generate", headers=principal_headers)

    assert first.status_code == 201
    assert first.get_json()["batch"]["status"] == "pending"
    assert second.status_code == 409


def test_review_override_and_reject(client, principal_headers, school, levels, sessions):
    current, _ = sessions
    student = _enroll(school, current, levels["8A"], "P1")
    batch_id = client.post(f"/promotions/sessions/{current.id}/generate",
                           headers=principal_headers).get_json()["batch"]["id"]

    overridden = client.post(f"/promotions/{batch_id}/override", json={
        "student_ids": [student.id], "decision": "repeat", "reason": "Long absence",
    }, headers=principal_headers)
    assert overridden.status_code == 200
    assert overridden.get_json()["stats"]["overridden"] == 1

    review = client.get(f"/promotions/{batch_id}", headers=principal_headers).get_json()
    assert review["students"]["data"][0]["decision"] == "repeat"
    assert review["stats"]["promote"] == 1

    missing_reason = client.post(f"/promotions/{batch_id}/reject", json={}, headers=principal_headers)
    assert missing_reason.status_code == 422

    rejected = client.post(f"/promotions/{batch_id}/reject", json={"comments": "Recheck marks"},
                           headers=principal_headers)
    assert rejected.get_json()["batch"]["status"] == "rejected"


def test_override_rejects_students_outside_batch(client, principal_headers, school, levels, sessions):
    current, _ = sessions
    _enroll(school, current, levels["8A"], "P1")
    batch_id = client.post(f"/promotions/sessions/{current.id}/generate",
                           headers=principal_headers).get_json()["batch"]["id"]

    response = client.post(f"/promotions/{batch_id}/override", json={
        "student_ids": [9999], "decision": "promote",
    }, headers=principal_headers)

    assert response.status_code == 422


def test_principal_cannot_execute(client, principal_headers, school, levels, sessions):
    current, _ = sessions
    _enroll(school, current, levels["8A"], "P1")
    batch_id = client.post(f"/promotions/sessions/{current.id}/generate",
                           headers=principal_headers).get_json()["batch"]["id"]

    response = client.post(f"/promotions/{batch_id}/execute", headers=principal_headers)

    assert response.status_code == 403


def test_execute_requires_approval(client, headers, school, levels, sessions):
    current, _ = sessions
    _enroll(school, current, levels["8A"], "P1")
    batch, _ = create_promotion_batch(current)
    db.session.commit()

    response = client.post(f"/promotions/{batch.id}/execute", headers=headers)

    assert response.status_code == 422


def test_full_promotion_workflow(client, headers, principal_headers, school, levels, sessions, make_term):
    current, following = sessions
    passing = _enroll(school, current, levels["8A"], "P1")
    failing = _enroll(school, current, levels["8A"], "F1", failed_subjects=3)
    leaving = _enroll(school, current, levels["9A"], "G1")
    term = make_term(current, status="active")

    closed = client.post(f"/terms/{term.id}/close", headers=principal_headers).get_json()
    batch_id = closed["promotion_batch"]["id"]

    approved = client.post(f"/promotions/{batch_id}/approve", json={"comments": "Looks right"},
                           headers=principal_headers)
    assert approved.get_json()["batch"]["can_execute"] is True

    executed = client.post(f"/promotions/{batch_id}/execute", headers=headers)
    assert executed.status_code == 202

    db.session.expire_all()
    batch = db.session.get(PromotionBatch, batch_id)
    assert batch.status == "completed"
    assert batch.executed_at is not None
    assert batch.processed_students == 3
    assert batch.progress_percentage == 100
    assert PromotionStudent.query.filter_by(promotion_batch_id=batch_id, is_processed=False).count() == 0

    def next_section(student):
        enrollment = StudentEnrollment.query.filter_by(
            student_id=student.id, academic_session_id=following.id
        ).first()
        return enrollment.class_section_id if enrollment else None

    assert next_section(passing) == levels["9A"].id
    assert next_section(failing) == levels["8A"].id
    assert next_section(leaving) is None

    outcomes = {h.student_id: h.outcome for h in PromotionHistory.query.all()}
    assert outcomes == {passing.id: "promoted", failing.id: "repeated", leaving.id: "graduated"}


def test_execution_without_next_session_fails_batch(client, headers, school, levels, make_session):
    current = make_session("2025", is_current=True)
    _enroll(school, current, levels["8A"], "P1")
    batch, _ = create_promotion_batch(current)
    batch.status = "approved"
    db.session.commit()

    client.post(f"/promotions/{batch.id}/execute", headers=headers)

    db.session.expire_all()
    assert db.session.get(PromotionBatch, batch.id).status == "failed"
    assert PromotionHistory.query.count() == 0
