PROJECT = {
    "name": "Harbour Warehouse",
    "type": "Industrial",
    "location": "Galle",
    "startDate": "2024-03-01",
    "endDate": "2024-09-30",
    "status": "Pending",
    "budget": 120000,
    "manager": "N. Perera",
    "description": "Steel frame warehouse",
}


def test_create_project_records_notification(client, db):
    resp = client.post("/api/projects", json=PROJECT)
    assert resp.status_code == 201
    project = resp.json()["data"]
    assert project["completion"] == 0
    notes = list(db["notification"].find({"type": "project_created"}))
    assert len(notes) == 1
    assert notes[0]["projectId"] == project["_id"]
    assert notes[0]["isRead"] is False


def test_end_before_start_rejected(client, db):
    resp = client.post("/api/projects", json={**PROJECT, "endDate": "2024-01-01"})
    assert resp.status_code == 400
    assert "endDate" in resp.json()["message"]
    assert db["project"].count_documents({}) == 0


def test_mixed_timezone_dates_accepted(client):
    resp = client.post("/api/projects", json={**PROJECT, "startDate": "2024-03-01", "endDate": "2024-09-30T00:00:00Z"})
    assert resp.status_code == 201


def test_mixed_timezone_end_before_start_rejected(client, project):
    resp = client.post("/api/projects", json={**PROJECT, "startDate": "2024-03-01T12:00:00+05:30", "endDate": "2024-03-01"})
    assert resp.status_code == 400
    resp = client.put(f"/api/projects/{project['_id']}", json={"endDate": "2023-12-31T23:00:00Z"})
    assert resp.status_code == 400


def test_unknown_status_rejected(client):
    resp = client.post("/api/projects", json={**PROJECT, "status": "Abandoned"})
    assert resp.status_code == 400


def test_status_transitions_are_free(client, project):
    for status in ("Completed", "Pending", "Cancelled"):
        resp = client.put(f"/api/projects/{project['_id']}", json={"status": status})
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == status


def test_update_project_notifies(client, project, db):
    resp = client.put(f"/api/projects/{project['_id']}", json={"completion": 75})
    assert resp.json()["data"]["completion"] == 75
    assert db["notification"].count_documents({"type": "project_updated", "projectId": project["_id"]}) == 1


def test_update_rejects_end_before_existing_start(client, project):
    resp = client.put(f"/api/projects/{project['_id']}", json={"endDate": "2023-06-01"})
    assert resp.status_code == 400


def test_completion_out_of_range(client, project):
    resp = client.put(f"/api/projects/{project['_id']}", json={"completion": 120})
    assert resp.status_code == 400


def test_get_and_delete_project(client, project, db):
    assert client.get(f"/api/projects/{project['_id']}").json()["data"]["name"] == "Riverside Tower"
    db["expense"].insert_one({"title": "Cement", "projectId": project["_id"]})
    resp = client.delete(f"/api/projects/{project['_id']}")
    assert resp.status_code == 200
    assert client.get(f"/api/projects/{project['_id']}").status_code == 404
    # no cascade
    assert db["expense"].count_documents({"projectId": project["_id"]}) == 1
    assert db["notification"].count_documents({"type": "project_deleted"}) == 1


def test_filter_by_status(client, project):
    client.post("/api/projects", json=PROJECT)
    data = client.get("/api/projects", params={"status": "Pending"}).json()["data"]
    assert [p["name"] for p in data] == ["Harbour Warehouse"]


def test_stats(client, project):
    client.post("/api/projects", json={**PROJECT, "completion": 20})
    stats = client.get("/api/projects/stats").json()["data"]
    assert stats["total"] == 2
    assert stats["byStatus"] == {"In Progress": 1, "Pending": 1}
    assert stats["totalBudget"] == 370000
    assert stats["averageCompletion"] == 30
