from schooldesk.extensions import db
from schooldesk.models import ClassLevel, ClassSection, Student


def _section(school):
    level = ClassLevel(school_id=school.id, name="Grade 8", sequence=1)
    section = ClassSection(school_id=school.id, class_level=level, name="A")
    db.session.add_all([level, section])
    db.session.commit()
    return section


def test_store_student_enrolls_in_current_session(client, headers, school, make_session):
    session = make_session("2025", is_current=True)
    section = _section(school)

    response = client.post("/students/", json={
        "first_name": "Ada", "last_name": "Moyo", "admission_number": "A-001", "class_section_id": section.id,
    }, headers=headers)

    assert response.status_code == 201
    student = db.session.get(Student, response.get_json()["student"]["id"])
    enrollment = student.enrollment_for(session.id)
    assert enrollment.class_section_id == section.id


def test_admission_number_unique_per_school(client, headers):
    payload = {"first_name": "Ada", "last_name": "Moyo", "admission_number": "A-001"}
    assert client.post("/students/", json=payload, headers=headers).status_code == 201

    response = client.post("/students/", json=payload, headers=headers)

    assert response.status_code == 422
    assert "admission_number" in response.get_json()["errors"]


def test_search_students_by_name(client, headers):
    for first, number in (("Ada", "1"), ("Bongani", "2"), ("Adaeze", "3")):
        client.post("/students/", json={
            "first_name": first, "last_name": "Moyo", "admission_number": number,
        }, headers=headers)

    body = client.get("/students/?search=ada&sortField=first_name&sortOrder=desc", headers=headers).get_json()

    assert [row["first_name"] for row in body["data"]] == ["Adaeze", "Ada"]


def test_record_scores_needs_enrollment(client, headers, school, make_session):
    make_session("2025", is_current=True)
    student = client.post("/students/", json={
        "first_name": "Ada", "last_name": "Moyo", "admission_number": "A-001",
    }, headers=headers).get_json()["student"]

    response = client.put(f"/students/{student['id']}/scores", json={"failed_subjects": 2}, headers=headers)

    assert response.status_code == 422


def test_student_stats_by_gender(client, headers):
    client.post("/students/", json={
        "first_name": "Ada", "last_name": "Moyo", "admission_number": "1", "gender": "female",
    }, headers=headers)
    client.post("/students/", json={
        "first_name": "Sipho", "last_name": "Dube", "admission_number": "2", "gender": "male",
    }, headers=headers)

    body = client.get("/students/stats", headers=headers).get_json()

    assert body == {"total": 2, "by_gender": {"female": 1, "male": 1}}


def test_staff_crud_and_soft_delete(client, headers):
    created = client.post("/staff/", json={
        "first_name": "Grace", "last_name": "Ndlovu", "email": "grace@example.com", "department_role": "teacher",
    }, headers=headers)
    assert created.status_code == 201
    staff_id = created.get_json()["staff"]["id"]

    updated = client.patch(f"/staff/{staff_id}", json={"phone": "0123"}, headers=headers)
    assert updated.status_code == 200
    assert updated.get_json()["staff"]["phone"] == "0123"

    client.delete("/staff/", json={"ids": [staff_id]}, headers=headers)
    assert client.get("/staff/", headers=headers).get_json()["meta"]["total"] == 0
    assert client.get(f"/staff/{staff_id}", headers=headers).status_code == 200


def test_staff_rejects_invalid_email(client, headers):
    response = client.post("/staff/", json={
        "first_name": "Grace", "last_name": "Ndlovu", "email": "not-an-email",
    }, headers=headers)

    assert response.status_code == 422
    assert "email" in response.get_json()["errors"]
