from datetime import timedelta

from app.core.clock import utcnow


def test_admin_routes_require_admin(client, auth_headers, customer, technician):
    assert client.get("/api/admin/users").status_code == 401
    assert client.get("/api/admin/users", headers=auth_headers(customer)).status_code == 403
    assert client.get("/api/admin/requests", headers=auth_headers(technician)).status_code == 403


def test_list_users_with_role_filter(client, auth_headers, admin, technician, customer):
    everyone = client.get("/api/admin/users", headers=auth_headers(admin)).json()
    assert {u["id"] for u in everyone} == {admin.id, technician.id, customer.id}

    technicians = client.get("/api/admin/users", params={"role": "technician"}, headers=auth_headers(admin)).json()
    assert [u["id"] for u in technicians] == [technician.id]


def test_change_role(client, auth_headers, admin, customer):
    response = client.patch(
        f"/api/admin/users/{customer.id}/role",
        json={"role": "technician", "technician_categories": ["Eletricidade"]},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["is_technician"] is True
    assert response.json()["technician_categories"] == ["Eletricidade"]

    bad = client.patch(f"/api/admin/users/{customer.id}/role", json={"role": "boss"}, headers=auth_headers(admin))
    assert bad.status_code == 400


def test_admin_cannot_delete_or_demote_self(client, auth_headers, admin):
    headers = auth_headers(admin)

    assert client.delete(f"/api/admin/users/{admin.id}", headers=headers).status_code == 400
    assert client.patch(f"/api/admin/users/{admin.id}/role", json={"role": "client"}, headers=headers).status_code == 400
    assert client.delete("/api/admin/users/9999", headers=headers).status_code == 404


def test_requests_and_feedback_moderation(client, auth_headers, admin, technician, customer, create_request):
    headers = auth_headers(admin)
    request = create_request(customer)
    client.patch(f"/api/requests/{request['id']}", json={"status": "concluido"}, headers=headers)
    feedback = client.post(
        f"/api/requests/{request['id']}/feedback", json={"rating": 2, "comment": "Demorou"}, headers=auth_headers(customer)
    ).json()

    completed = client.get("/api/admin/requests", params={"status": "concluido"}, headers=headers).json()
    assert [r["id"] for r in completed] == [request["id"]]

    feedbacks = client.get("/api/admin/feedbacks", headers=headers).json()
    assert [f["id"] for f in feedbacks] == [feedback["id"]]

    assert client.delete(f"/api/admin/feedbacks/{feedback['id']}", headers=headers).status_code == 204
    assert client.delete(f"/api/admin/feedbacks/{feedback['id']}", headers=headers).status_code == 404

    assert client.delete(f"/api/admin/requests/{request['id']}", headers=headers).status_code == 204
    assert client.get("/api/admin/requests", headers=headers).json() == []


def test_schedule_email_for_request(client, auth_headers, admin, customer, create_request):
    headers = auth_headers(admin)
    request = create_request(customer)
    payload = {
        "to_email": "cliente@mail.pt",
        "subject": "Visita confirmada",
        "body": "O técnico passa amanhã.",
        "send_at": (utcnow() + timedelta(hours=2)).isoformat(),
    }

    created = client.post(f"/api/admin/requests/{request['id']}/schedule-email", json=payload, headers=headers)
    assert created.status_code == 201
    assert created.json()["sent_at"] is None
    assert created.json()["attempts"] == 0

    pending = client.get("/api/admin/scheduled-emails", params={"pending": True}, headers=headers).json()
    assert [e["id"] for e in pending] == [created.json()["id"]]
    assert client.get("/api/admin/scheduled-emails", params={"pending": False}, headers=headers).json() == []

    missing = client.post("/api/admin/requests/9999/schedule-email", json=payload, headers=headers)
    assert missing.status_code == 404


def test_scheduler_status(client, auth_headers, admin):
    response = client.get("/api/admin/scheduler-status", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["running"] is False
    assert response.json()["timezone"] == "Europe/Lisbon"
