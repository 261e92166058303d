import re

from deploy_checklist.models import CHECKLIST_FIELDS

from conftest import fake_photo

TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


def test_create_window_deployment_without_photos(client, deployment_fields):
    res = client.post("/deployments", json={**deployment_fields, "windows_firewall_off": True})
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["photos_saved"] == 0
    assert body["photos_skipped"] == 0
    assert "warning" not in body

    res = client.get("/deployments", params={"id": body["id"]})
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["windows_firewall_off"] == 1
    assert data["sunmi_remote_assistance"] == 0
    for field in CHECKLIST_FIELDS:
        assert data[field] == 0
    assert data["photos"] == []


def test_create_then_read_round_trip(client, deployment_fields):
    payload = {
        **deployment_fields,
        "printer_ip": "Kitchen (192.168.1.100)\nBar (192.168.1.101)",
        "check_pax": True,
        "check_qr_order": 1,
    }
    new_id = client.post("/deployments", json=payload).json()["id"]

    data = client.get("/deployments", params={"id": new_id}).json()["data"]
    for key, value in deployment_fields.items():
        if key != "printer_ip":
            assert data[key] == value
    assert data["printer_ip"] == "Kitchen (192.168.1.100)\nBar (192.168.1.101)"
    assert data["device_serial_number"] == ""
    assert data["check_pax"] == 1
    assert data["check_qr_order"] == 1
    assert data["check_custom_item"] == 0
    assert TIMESTAMP.match(data["created_at"])


def test_oversized_photo_is_skipped_with_warning(client, deployment_fields):
    payload = {
        **deployment_fields,
        "device_photos": [fake_photo(600_000, "big.jpg"), fake_photo(10_000, "small.jpg")],
    }
    res = client.post("/deployments", json=payload)
    assert res.status_code == 201
    body = res.json()
    assert body["photos_saved"] == 1
    assert body["photos_skipped"] == 1
    assert body["warning"].startswith("1 photo(s) were too large")

    detail = client.get("/deployments", params={"id": body["id"]}).json()["data"]
    assert [p["filename"] for p in detail["photos"]] == ["small.jpg"]
    assert "data" not in detail["photos"][0]


def test_saved_plus_skipped_matches_submitted(client, deployment_fields):
    device = [fake_photo(1_000), fake_photo(500_001), {"filename": "empty.jpg", "data": ""}]
    printer = [fake_photo(500_000), fake_photo(700_000)]
    body = client.post(
        "/deployments", json={**deployment_fields, "device_photos": device, "printer_photos": printer}
    ).json()
    assert body["photos_saved"] + body["photos_skipped"] == len(device) + len(printer)
    assert body["photos_saved"] == 2
    assert client.get("/deployments", params={"id": body["id"]}).status_code == 200


def test_missing_required_fields(client, deployment_fields):
    payload = dict(deployment_fields)
    payload["static_ip"] = ""
    res = client.post("/deployments", json=payload)
    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Missing required fields"}
    assert client.get("/deployments").json()["data"] == []


def test_list_with_search_and_photo_counts(client, deployment_fields):
    first = client.post(
        "/deployments",
        json={**deployment_fields, "device_photos": [fake_photo(100), fake_photo(100)], "printer_photos": [fake_photo(100)]},
    ).json()["id"]
    second = client.post(
        "/deployments", json={**deployment_fields, "merchant_name": "Kopi Corner", "device_type": "Sunmi Device"}
    ).json()["id"]

    rows = client.get("/deployments").json()["data"]
    assert [r["id"] for r in rows] == [second, first]
    assert rows[1]["photo_counts"] == {"device": 2, "printer": 1}
    assert rows[0]["photo_counts"] == {}

    rows = client.get("/deployments", params={"search": "ACME"}).json()["data"]
    assert [r["id"] for r in rows] == [first]

    rows = client.get("/deployments", params={"search": "sunmi"}).json()["data"]
    assert [r["id"] for r in rows] == [second]

    assert client.get("/deployments", params={"search": "100%"}).json()["data"] == []


def test_get_unknown_deployment(client):
    res = client.get("/deployments", params={"id": 999})
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Not found"}


def test_invalid_id(client):
    res = client.get("/deployments", params={"id": "abc"})
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_update_overwrites_fields_and_keeps_created_at(client, deployment_fields):
    created = client.post("/deployments", json={**deployment_fields, "check_pax": True}).json()
    before = client.get("/deployments", params={"id": created["id"]}).json()["data"]

    update = {**deployment_fields, "id": created["id"], "merchant_name": "Acme Bistro", "check_close_counter": True}
    res = client.put("/deployments", json=update)
    assert res.json() == {"success": True}

    after = client.get("/deployments", params={"id": created["id"]}).json()["data"]
    assert after["merchant_name"] == "Acme Bistro"
    assert after["check_close_counter"] == 1
    # not resupplied, so cleared
    assert after["check_pax"] == 0
    assert after["created_at"] == before["created_at"]


def test_update_unknown_id_succeeds(client, deployment_fields):
    res = client.put("/deployments", json={**deployment_fields, "id": 4242})
    assert res.status_code == 200
    assert res.json() == {"success": True}


def test_update_requires_id(client, deployment_fields):
    res = client.put("/deployments", json=deployment_fields)
    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Missing deployment ID"}


def test_delete_removes_photos_then_deployment(client, deployment_fields, session):
    from sqlmodel import select
    from deploy_checklist.models import DeploymentPhoto

    created = client.post("/deployments", json={**deployment_fields, "device_photos": [fake_photo(200)]}).json()
    photo_id = client.get("/deployments", params={"id": created["id"]}).json()["data"]["photos"][0]["id"]

    assert client.delete("/deployments", params={"id": created["id"]}).json() == {"success": True}
    assert client.get("/deployments", params={"id": created["id"]}).status_code == 404
    assert client.get("/photos", params={"id": photo_id}).status_code == 404
    assert session.exec(select(DeploymentPhoto)).all() == []


def test_delete_requires_id_and_ignores_unknown(client):
    res = client.delete("/deployments")
    assert res.status_code == 400
    assert res.json()["error"] == "Missing deployment ID"
    assert client.delete("/deployments", params={"id": 31337}).json() == {"success": True}


def test_read_photo(client, deployment_fields):
    photo = fake_photo(300, "printer.jpg")
    created = client.post("/deployments", json={**deployment_fields, "printer_photos": [photo]}).json()
    meta = client.get("/deployments", params={"id": created["id"]}).json()["data"]["photos"][0]
    assert meta["category"] == "printer"

    res = client.get("/photos", params={"id": meta["id"]})
    assert res.status_code == 200
    assert res.json()["data"] == {"data": photo["data"], "filename": "printer.jpg"}


def test_read_photo_errors(client):
    res = client.get("/photos")
    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Missing photo id"}
    res = client.get("/photos", params={"id": 77})
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Photo not found"}


def test_malformed_body_uses_error_shape(client):
    res = client.post("/deployments", content=b"{not json", headers={"Content-Type": "application/json"})
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_unknown_device_type_is_rejected(client, deployment_fields):
    res = client.post("/deployments", json={**deployment_fields, "device_type": "Toaster"})
    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Invalid device type: Toaster"}
    assert client.get("/deployments").json()["data"] == []

    created = client.post("/deployments", json=deployment_fields).json()
    res = client.put("/deployments", json={**deployment_fields, "id": created["id"], "device_type": "Toaster"})
    assert res.status_code == 400
    detail = client.get("/deployments", params={"id": created["id"]}).json()["data"]
    assert detail["device_type"] == deployment_fields["device_type"]


def test_numeric_text_fields_are_accepted(client, deployment_fields):
    res = client.post("/deployments", json={**deployment_fields, "anydesk_id": 123456789})
    assert res.status_code == 201
    detail = client.get("/deployments", params={"id": res.json()["id"]}).json()["data"]
    assert detail["anydesk_id"] == "123456789"
