from schooldesk.extensions import db
from schooldesk.models import ClassLevel, ClassSection, TimeTable


def _section(school, level_name="Grade 8", name="A", sequence=1):
    level = ClassLevel(school_id=school.id, name=level_name, sequence=sequence)
    section = ClassSection(school_id=school.id, class_level=level, name=name)
    db.session.add_all([level, section])
    db.session.commit()
    return section


def test_store_attaches_sections(client, headers, school, make_session, make_term):
    term = make_term(make_session("2025"))
    section = _section(school)

    response = client.post("/timetables/", json={
        "term_id": term.id, "title": "Main timetable", "section_ids": [section.id],
    }, headers=headers)

    assert response.status_code == 201
    timetable = response.get_json()["timetable"]
    assert timetable["section_ids"] == [section.id]
    assert timetable["status"] == "inactive"
    assert timetable["term_name"] == "Term 1"


def test_store_rejects_foreign_sections(client, headers, make_school, make_session, make_term):
    term = make_term(make_session("2025"))
    foreign = _section(make_school("Other"))

    response = client.post("/timetables/", json={
        "term_id": term.id, "title": "Main", "section_ids": [foreign.id],
    }, headers=headers)

    assert response.status_code == 422
    assert "section_ids" in response.get_json()["errors"]


def test_one_active_timetable_per_term(client, headers, make_session, make_term):
    term = make_term(make_session("2025"))
    first = client.post("/timetables/", json={
        "term_id": term.id, "title": "First", "status": "active",
    }, headers=headers).get_json()["timetable"]
    second = client.post("/timetables/", json={
        "term_id": term.id, "title": "Second", "status": "active",
    }, headers=headers).get_json()["timetable"]

    db.session.expire_all()
    assert db.session.get(TimeTable, first["id"]).status == "inactive"
    assert db.session.get(TimeTable, second["id"]).status == "active"

    client.post(f"/timetables/{first['id']}/set-active", headers=headers)
    db.session.expire_all()
    assert TimeTable.query.filter_by(status="active").one().id == first["id"]


def test_index_filters_by_status(client, headers, make_session, make_term):
    term = make_term(make_session("2025"))
    client.post("/timetables/", json={"term_id": term.id, "title": "Live", "status": "active"}, headers=headers)
    client.post("/timetables/", json={"term_id": term.id, "title": "Draft"}, headers=headers)

    body = client.get("/timetables/?filters[status]=active", headers=headers).get_json()

    assert [row["title"] for row in body["data"]] == ["Live"]


def test_class_levels_and_sections(client, headers):
    level = client.post("/classes/levels", json={"name": "Grade 8", "sequence": 1}, headers=headers)
    assert level.status_code == 201
    level_id = level.get_json()["class_level"]["id"]

    duplicate = client.post("/classes/levels", json={"name": "Grade 8b", "sequence": 1}, headers=headers)
    assert duplicate.status_code == 422

    section = client.post("/classes/sections", json={"class_level_id": level_id, "name": "A"}, headers=headers)
    assert section.status_code == 201
    assert section.get_json()["class_section"]["display_name"] == "Grade 8 A"

    listed = client.get("/classes/sections?search=Grade", headers=headers).get_json()
    assert listed["meta"]["total"] == 1
