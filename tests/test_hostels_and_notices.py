from schooldesk.models import Notice, NoticeRecipient, Notification


def test_hostel_with_warden_notifies_admin_and_warden(client, headers, admin, make_user, school, make_staff):
    warden_user = make_user("warden", school)
    warden = make_staff("Thandi", "Khumalo", "warden", user=warden_user)

    response = client.post("/hostels/", json={
        "name": "North House", "type": "girls", "capacity": 60, "warden_id": warden.id,
    }, headers=headers)

    assert response.status_code == 201
    assert response.get_json()["hostel"]["warden_name"] == "Thandi Khumalo"
    notified = {n.user_id for n in Notification.query.filter_by(type="hostel_created")}
    assert notified == {admin.id, warden_user.id}


def test_hostel_type_is_validated(client, headers):
    response = client.post("/hostels/", json={"name": "Odd House", "type": "castle"}, headers=headers)

    assert response.status_code == 422
    assert "type" in response.get_json()["errors"]


def test_hostel_delete_and_restore(client, headers):
    hostel_id = client.post("/hostels/", json={"name": "North House"}, headers=headers).get_json()["hostel"]["id"]

    client.delete("/hostels/", json={"ids": [hostel_id]}, headers=headers)
    assert client.get("/hostels/", headers=headers).get_json()["meta"]["total"] == 0
    assert Notification.query.filter_by(type="hostel_deleted").count() == 1

    client.post("/hostels/restore", json={"ids": [hostel_id]}, headers=headers)
    assert client.get("/hostels/", headers=headers).get_json()["meta"]["total"] == 1


def test_notice_goes_to_selected_recipients(client, headers, make_user, school, headers_for):
    teacher = make_user("teacher", school)
    other = make_user("teacher", school)

    response = client.post("/notices/", json={
        "title": "Sports day", "content": "Friday at 9", "type": "Reminder", "recipient_ids": [teacher.id],
    }, headers=headers)

    assert response.status_code == 201
    notice_id = response.get_json()["notice"]["id"]
    assert NoticeRecipient.query.filter_by(notice_id=notice_id).count() == 1
    assert Notification.query.filter_by(user_id=teacher.id, type="notice_published").count() == 1
    assert Notification.query.filter_by(user_id=other.id).count() == 0

    listed = client.get("/notices/", headers=headers_for(teacher)).get_json()
    assert listed["data"][0]["is_read"] is False

    read = client.post(f"/notices/{notice_id}/read", headers=headers_for(teacher))
    assert read.status_code == 200
    listed = client.get("/notices/", headers=headers_for(teacher)).get_json()
    assert listed["data"][0]["is_read"] is True


def test_mark_read_requires_being_a_recipient(client, headers, make_user, school, headers_for):
    teacher = make_user("teacher", school)
    outsider = make_user("teacher", school)
    notice_id = client.post("/notices/", json={
        "title": "Staff meeting", "content": "Room 4", "recipient_ids": [teacher.id],
    }, headers=headers).get_json()["notice"]["id"]

    response = client.post(f"/notices/{notice_id}/read", headers=headers_for(outsider))

    assert response.status_code == 404


def test_notice_recipients_must_be_in_school(client, headers, make_user, make_school):
    stranger = make_user("teacher", make_school("Other"))

    response = client.post("/notices/", json={
        "title": "Hi", "content": "There", "recipient_ids": [stranger.id],
    }, headers=headers)

    assert response.status_code == 422
    assert Notice.query.count() == 0


def test_public_notices_are_visible_to_other_schools(client, headers, make_user, make_school, headers_for):
    client.post("/notices/", json={"title": "Open day", "content": "Everyone welcome", "is_public": True},
                headers=headers)
    client.post("/notices/", json={"title": "Internal", "content": "Staff only"}, headers=headers)
    outsider = make_user("teacher", make_school("Other"))

    body = client.get("/notices/", headers=headers_for(outsider)).get_json()

    assert [row["title"] for row in body["data"]] == ["Open day"]


def test_teacher_cannot_publish_notices(client, make_user, school, headers_for):
    teacher = make_user("teacher", school)

    response = client.post("/notices/", json={"title": "Hi", "content": "There"}, headers=headers_for(teacher))

    assert response.status_code == 403
