import json
from datetime import date

from werkzeug.datastructures import MultiDict

from schooldesk.extensions import db
from schooldesk.models import AcademicSession, Term
from utils.table_query import TableParams, column_definitions, table_query


def _sessions(school, count):
    for index in range(count):
        db.session.add(AcademicSession(
            school_id=school.id, name=f"Session {index:03d}",
            start_date=date(2000 + index, 1, 1), end_date=date(2000 + index, 12, 1),
        ))
    db.session.commit()


def test_params_fall_back_on_garbage(app):
    params = TableParams.from_request(MultiDict({
        "page": "-3", "perPage": "lots", "sortOrder": "sideways", "search": "<b> </b>",
    }))

    assert params.page == 1
    assert params.per_page == 20
    assert params.sort_order == "asc"
    assert params.search is None

    huge = TableParams.from_request(MultiDict({"page": "9" * 30}))
    assert huge.page == 1


def test_per_page_is_capped(app):
    params = TableParams.from_request(MultiDict({"perPage": "100000"}))

    assert params.per_page == 100


def test_bracket_and_json_filters(app):
    params = TableParams.from_request(MultiDict([
        ("filters", '{"name": "2025"}'),
        ("filters[status][]", "active"),
        ("filters[status][]", "pending"),
        ("filters[empty]", ""),
    ]))

    assert params.filters == {"name": "2025", "status": ["active", "pending"]}


def test_columns_hide_tenant_and_soft_delete_fields(app):
    fields = [c["field"] for c in column_definitions(Term, [
        {"field": "academic_session_name", "relation": "academic_session", "related_field": "name"},
    ])]

    assert "school_id" not in fields
    assert "deleted" not in fields
    assert fields[-1] == "academic_session_name"

    status = next(c for c in column_definitions(Term) if c["field"] == "status")
    assert status["filter_type"] == "text"
    date_column = next(c for c in column_definitions(Term) if c["field"] == "start_date")
    assert date_column["filter_type"] == "date"


def test_pagination_meta(app, school):
    _sessions(school, 25)

    page = table_query(AcademicSession.query, AcademicSession, MultiDict({"page": "2", "perPage": "10"}))

    assert page.meta() == {"total": 25, "page": 2, "per_page": 10, "pages": 3, "from": 11, "to": 20}
    assert [s.name for s in page.items][0] == "Session 010"


def test_page_past_the_end_is_empty(app, school):
    _sessions(school, 3)

    page = table_query(AcademicSession.query, AcademicSession, MultiDict({"page": "9"}))

    assert page.items == []
    assert page.meta()["from"] is None


def test_search_escapes_like_wildcards(app, school):
    db.session.add_all([
        AcademicSession(school_id=school.id, name="100% done", start_date=date(2025, 1, 1), end_date=date(2025, 2, 1)),
        AcademicSession(school_id=school.id, name="1000 days", start_date=date(2025, 1, 1), end_date=date(2025, 2, 1)),
    ])
    db.session.commit()

    page = table_query(AcademicSession.query, AcademicSession, MultiDict({"search": "100%"}))

    assert [s.name for s in page.items] == ["100% done"]


def test_date_range_filter(app, school):
    _sessions(school, 5)

    page = table_query(AcademicSession.query, AcademicSession, MultiDict([
        ("filters[start_date][]", "2001-01-01"),
        ("filters[start_date][]", "2003-01-01"),
    ]))

    assert [s.name for s in page.items] == ["Session 001", "Session 002", "Session 003"]


def test_boolean_filter_and_invalid_sort_fallback(app, school):
    _sessions(school, 3)
    AcademicSession.query.filter_by(name="Session 001").update({"is_current": True})
    db.session.commit()

    page = table_query(AcademicSession.query, AcademicSession, MultiDict({
        "filters[is_current]": "true", "sortField": "not_a_column",
    }))

    assert [s.name for s in page.items] == ["Session 001"]


def test_sort_by_relation_column(app, school):
    early = AcademicSession(school_id=school.id, name="B session", start_date=date(2025, 1, 1), end_date=date(2025, 12, 1))
    late = AcademicSession(school_id=school.id, name="A session", start_date=date(2026, 1, 1), end_date=date(2026, 12, 1))
    db.session.add_all([early, late])
    db.session.flush()
    for session in (early, late):
        db.session.add(Term(school_id=school.id, academic_session_id=session.id, name="Term 1",
                            start_date=session.start_date, end_date=session.end_date))
    db.session.commit()

    page = table_query(Term.query, Term, MultiDict({"sortField": "academic_session_name"}), [
        {"field": "academic_session_name", "relation": "academic_session", "related_field": "name"},
    ])

    assert [t.academic_session_id for t in page.items] == [late.id, early.id]


def test_only_trashed(app, school):
    _sessions(school, 2)
    AcademicSession.query.filter_by(name="Session 000").first().soft_delete()
    db.session.commit()

    page = table_query(AcademicSession.query, AcademicSession, MultiDict({"only_trashed": "1"}))

    assert [s.name for s in page.items] == ["Session 000"]


def test_listing_endpoint_caps_per_page(client, headers, school):
    _sessions(school, 3)

    meta = client.get("/academic-sessions/?perPage=5000", headers=headers).get_json()["meta"]

    assert meta["per_page"] == 100
    assert meta["total"] == 3


def test_in_filter_ignores_non_scalar_values(client, headers, make_session, make_term):
    make_term(make_session("2025", is_current=True), "Term 1")

    response = client.get("/terms/", query_string={"filters": json.dumps({"status": {"a": 1}})}, headers=headers)

    assert response.status_code == 200
    assert [row["name"] for row in response.get_json()["data"]] == ["Term 1"]


def test_huge_page_number_falls_back_to_first_page(client, headers, school):
    _sessions(school, 2)

    response = client.get(f"/academic-sessions/?page={'9' * 30}", headers=headers)

    assert response.status_code == 200
    assert response.get_json()["meta"]["page"] == 1
    assert len(response.get_json()["data"]) == 2
