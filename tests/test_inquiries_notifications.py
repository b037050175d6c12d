INQUIRY = {
    "selectedPackage": "Design & Build",
    "name": "Dilani",
    "email": "dilani@example.com",
    "message": "Two storey house in Kandy",
}


def test_submit_inquiry_creates_notification(client, db):
    resp = client.post("/api/inquiries", json=INQUIRY)
    assert resp.status_code == 201
    inquiry = resp.json()["data"]
    assert inquiry["packageType"] == "Design & Build"
    note = db["notification"].find_one({"type": "inquiry_received"})
    assert note["inquiryId"] == inquiry["_id"]
    assert "Dilani" in note["message"]


def test_inquiry_package_enforced(client):
    assert client.post("/api/inquiries", json={**INQUIRY, "selectedPackage": "Demolition"}).status_code == 400


def test_inquiry_list_is_admin_only(client, admin_headers, user_headers):
    client.post("/api/inquiries", json=INQUIRY)
    assert client.get("/api/inquiries").status_code == 401
    assert client.get("/api/inquiries", headers=user_headers).status_code == 403
    resp = client.get("/api/inquiries", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["count"] == 1


def test_notification_lifecycle(client, project):
    created = client.post("/api/notifications", json={"message": "Check site", "type": "project_updated", "projectId": project["_id"]})
    assert created.status_code == 201
    note = created.json()["data"]
    assert note["isRead"] is False

    resp = client.put(f"/api/notifications/{note['_id']}")
    assert resp.json()["data"]["isRead"] is True
    resp = client.put(f"/api/notifications/{note['_id']}", json={"isRead": False})
    assert resp.json()["data"]["isRead"] is False

    assert client.delete(f"/api/notifications/{note['_id']}").status_code == 200
    assert client.delete(f"/api/notifications/{note['_id']}").status_code == 404


def test_notification_reference_checked(client):
    resp = client.post("/api/notifications", json={"message": "x", "type": "project_created", "projectId": "65a000000000000000000000"})
    assert resp.status_code == 400
    resp = client.post("/api/notifications", json={"message": "x", "type": "inquiry_received", "inquiryId": "nope"})
    assert resp.status_code == 400


def test_unread_filter_and_mark_all(client):
    for i in range(3):
        client.post("/api/inquiries", json={**INQUIRY, "name": f"Client {i}"})
    unread = client.get("/api/notifications", params={"unreadOnly": "true"}).json()["data"]
    assert len(unread) == 3
    client.put(f"/api/notifications/{unread[0]['_id']}")

    resp = client.put("/api/notifications/mark-all/read")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"modified": 2}
    assert client.get("/api/notifications", params={"unreadOnly": "true"}).json()["data"] == []
    assert len(client.get("/api/notifications").json()["data"]) == 3
