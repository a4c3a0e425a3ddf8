import pytest

from schooldesk.models import DriverAssignment


@pytest.fixture
def manager_headers(make_user, school, headers_for):
    return headers_for(make_user("transport_manager", school))


def _vehicle(client, headers, **extra):
    payload = {"name": "Bus 1", "registration_number": "CA 123-456", "capacity": 40, **extra}
    response = client.post("/vehicles/", json=payload, headers=headers)
    assert response.status_code == 201
    return response.get_json()["vehicle"]


def test_store_with_driver_opens_assignment(client, manager_headers, make_staff):
    driver = make_staff("Sam", "Driver", "driver")

    vehicle = _vehicle(client, manager_headers, staff_id=driver.id)

    assert vehicle["current_driver"] == {"id": driver.id, "name": "Sam Driver"}


def test_reassigning_same_driver_is_a_no_op(client, manager_headers, make_staff):
    driver = make_staff("Sam", "Driver", "driver")
    vehicle = _vehicle(client, manager_headers, staff_id=driver.id)

    response = client.post(f"/vehicles/{vehicle['id']}/assign-driver", json={"staff_id": driver.id},
                           headers=manager_headers)

    assert response.status_code == 200
    assert response.get_json()["changed"] is False
    assert DriverAssignment.query.count() == 1


def test_new_driver_closes_previous_assignment(client, manager_headers, make_staff):
    first = make_staff("Sam", "Driver", "driver")
    second = make_staff("Lebo", "Mokoena", "driver")
    vehicle = _vehicle(client, manager_headers, staff_id=first.id)

    response = client.post(f"/vehicles/{vehicle['id']}/assign-driver", json={
        "staff_id": second.id, "options": {"shift": "morning"},
    }, headers=manager_headers)

    assert response.get_json()["changed"] is True
    assert response.get_json()["assignment"]["options"] == {"shift": "morning"}

    history = client.get(f"/vehicles/{vehicle['id']}/drivers", headers=manager_headers).get_json()["data"]
    assert [row["staff_id"] for row in history] == [second.id, first.id]
    assert history[0]["unassigned_at"] is None
    assert history[1]["unassigned_at"] is not None

    shown = client.get(f"/vehicles/{vehicle['id']}", headers=manager_headers).get_json()
    assert shown["current_driver"]["id"] == second.id
    assert len(shown["driver_history"]) == 2


def test_driver_must_belong_to_school(client, manager_headers, make_school, make_staff):
    foreign = make_staff("Far", "Away", "driver", owner=make_school("Other"))

    response = client.post("/vehicles/", json={
        "name": "Bus", "registration_number": "X", "staff_id": foreign.id,
    }, headers=manager_headers)

    assert response.status_code == 422
    assert "staff_id" in response.get_json()["errors"]


def test_routes_count_vehicles(client, manager_headers):
    bus = _vehicle(client, manager_headers)
    van = _vehicle(client, manager_headers, name="Van", registration_number="CA 999")

    created = client.post("/transport-routes/", json={
        "name": "North loop", "fee": "120.00", "vehicle_ids": [bus["id"], van["id"]],
    }, headers=manager_headers)
    assert created.status_code == 201
    assert sorted(created.get_json()["route"]["vehicle_ids"]) == sorted([bus["id"], van["id"]])

    client.delete("/vehicles/", json={"ids": [van["id"]]}, headers=manager_headers)
    listed = client.get("/transport-routes/", headers=manager_headers).get_json()
    assert listed["data"][0]["vehicle_count"] == 1

    vehicles = client.get("/vehicles/?sortField=route_count&sortOrder=desc", headers=manager_headers).get_json()
    assert vehicles["data"][0]["route_count"] == 1


def test_vehicle_search_reaches_driver_name(client, manager_headers, make_staff):
    driver = make_staff("Sam", "Zulu", "driver")
    _vehicle(client, manager_headers, staff_id=driver.id)
    _vehicle(client, manager_headers, name="Spare", registration_number="CA 2")

    body = client.get("/vehicles/?search=zulu", headers=manager_headers).get_json()

    assert [row["name"] for row in body["data"]] == ["Bus 1"]


def test_driver_filter_ignores_former_drivers(client, manager_headers, make_staff):
    former = make_staff("Sipho", "Formerdriver", "driver")
    current = make_staff("Lebo", "Currentdriver", "driver")
    vehicle = _vehicle(client, manager_headers, staff_id=former.id)
    client.post(f"/vehicles/{vehicle['id']}/assign-driver", json={"staff_id": current.id},
                headers=manager_headers)

    by_former = client.get("/vehicles/?filters[driver_name]=Formerdriver", headers=manager_headers).get_json()
    by_current = client.get("/vehicles/?filters[driver_name]=Currentdriver", headers=manager_headers).get_json()
    searched = client.get("/vehicles/?search=formerdriver", headers=manager_headers).get_json()

    assert by_former["data"] == []
    assert [row["id"] for row in by_current["data"]] == [vehicle["id"]]
    assert searched["data"] == []
