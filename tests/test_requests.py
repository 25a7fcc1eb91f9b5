from datetime import timedelta

from app.core.clock import as_utc, utcnow
from app.domain.models.feedback import Feedback
from app.domain.models.maintenance_request import MaintenanceRequest
from app.domain.models.message import Message
from app.domain.models.scheduled_email import EmailKind, ScheduledEmail
from app.domain.models.user import UserRole


def test_assignment_and_thread_visibility_scenario(client, auth_headers, admin, technician, customer, stranger, create_request):
    request = create_request(customer, category="Canalização", price=50)
    assert request["status"] == "pendente"
    assert request["technician_id"] is None

    patched = client.patch(
        f"/api/requests/{request['id']}",
        json={"technician_id": technician.id},
        headers=auth_headers(admin),
    )
    assert patched.status_code == 200
    assert patched.json()["technician_id"] == technician.id
    assert patched.json()["status"] == "em_progresso"

    posted = client.post(
        f"/api/requests/{request['id']}/messages",
        json={"content": "Passo aí amanhã às 10h."},
        headers=auth_headers(technician),
    )
    assert posted.status_code == 201

    thread = client.get(f"/api/messages/{request['id']}", headers=auth_headers(customer))
    assert thread.status_code == 200
    assert [m["content"] for m in thread.json()] == ["Passo aí amanhã às 10h."]
    assert thread.json()[0]["sender"]["id"] == technician.id

    denied = client.get(f"/api/messages/{request['id']}", headers=auth_headers(stranger))
    assert denied.status_code == 403


def test_create_notifies_technicians_of_the_category(client, make_user, customer, technician, mailer, create_request):
    make_user(UserRole.TECHNICIAN, email="pintor@mail.pt", categories=["Pintura"])
    generalist = make_user(UserRole.TECHNICIAN, email="geral@mail.pt", categories=[])

    create_request(customer, category="Canalização")

    assert sorted(mailer.recipients()) == sorted([technician.email, generalist.email])


def test_create_validates_payload(client, auth_headers, customer):
    response = client.post(
        "/api/requests",
        json={"title": "ok", "description": "", "category": "Jardinagem", "price": -1},
        headers=auth_headers(customer),
    )

    assert response.status_code == 400
    fields = response.json()["error"]["details"]["fields"]
    assert {"title", "description", "category", "price"} <= set(fields)


def test_create_with_visit_schedules_reminder(client, db, customer, create_request):
    visit = utcnow() + timedelta(days=3)

    request = create_request(customer, scheduled_at=visit.isoformat())

    reminders = db.query(ScheduledEmail).filter(ScheduledEmail.request_id == request["id"]).all()
    assert len(reminders) == 1
    assert reminders[0].to_email == customer.email
    assert abs(as_utc(reminders[0].send_at) - (visit - timedelta(hours=24))) < timedelta(seconds=1)


def test_only_admin_assigns_technicians(client, auth_headers, technician, customer, create_request):
    request = create_request(customer)

    response = client.patch(
        f"/api/requests/{request['id']}",
        json={"technician_id": technician.id},
        headers=auth_headers(customer),
    )

    assert response.status_code == 403


def test_assigning_a_non_technician_is_400(client, auth_headers, admin, customer, stranger, create_request):
    request = create_request(customer)

    response = client.patch(
        f"/api/requests/{request['id']}",
        json={"technician_id": stranger.id},
        headers=auth_headers(admin),
    )

    assert response.status_code == 400


def test_owner_updates_own_request(client, auth_headers, customer, stranger, create_request):
    request = create_request(customer)

    response = client.put(
        f"/api/requests/{request['id']}",
        json={"title": "Torneira partida", "price": 80},
        headers=auth_headers(customer),
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Torneira partida"
    assert response.json()["price"] == 80

    forbidden = client.patch(
        f"/api/requests/{request['id']}", json={"title": "Roubado"}, headers=auth_headers(stranger)
    )
    assert forbidden.status_code == 403


def test_listing_rules_by_role(client, auth_headers, admin, technician, customer, make_user, create_request):
    plumbing = create_request(customer, category="Canalização")
    painting = create_request(customer, category="Pintura")

    assert client.get("/api/requests", headers=auth_headers(customer)).status_code == 403

    everything = client.get("/api/requests", headers=auth_headers(admin)).json()
    assert [r["id"] for r in everything] == [painting["id"], plumbing["id"]]

    visible = client.get("/api/requests", headers=auth_headers(technician)).json()
    assert [r["id"] for r in visible] == [plumbing["id"]]

    mine = client.get("/api/requests/mine", headers=auth_headers(customer)).json()
    assert [r["id"] for r in mine] == [painting["id"], plumbing["id"]]


def test_detail_is_404_or_403(client, auth_headers, customer, stranger, create_request):
    request = create_request(customer)

    assert client.get("/api/requests/9999", headers=auth_headers(customer)).status_code == 404
    assert client.get(f"/api/requests/{request['id']}", headers=auth_headers(stranger)).status_code == 403

    detail = client.get(f"/api/requests/{request['id']}", headers=auth_headers(customer))
    assert detail.status_code == 200
    assert detail.json()["messages"] == []
    assert detail.json()["feedback"] is None


def test_accept_and_decline(client, auth_headers, technician, make_user, customer, mailer, create_request):
    other = make_user(UserRole.TECHNICIAN, categories=["Canalização"])
    request = create_request(customer)
    mailer.sent.clear()

    accepted = client.post(f"/api/requests/{request['id']}/accept", headers=auth_headers(technician))
    assert accepted.status_code == 200
    assert accepted.json()["request"]["status"] == "em_progresso"
    assert sorted(mailer.recipients()) == sorted([technician.email, customer.email])

    taken = client.post(f"/api/requests/{request['id']}/accept", headers=auth_headers(other))
    assert taken.status_code == 409

    assert client.post(f"/api/requests/{request['id']}/accept", headers=auth_headers(customer)).status_code == 403

    declined = client.post(f"/api/requests/{request['id']}/decline", headers=auth_headers(technician))
    assert declined.status_code == 200
    assert declined.json()["request"]["status"] == "pendente"
    assert declined.json()["request"]["technician_id"] is None


def _pending_reminders(db, request_id, email=None):
    db.expire_all()
    query = db.query(ScheduledEmail).filter(
        ScheduledEmail.request_id == request_id,
        ScheduledEmail.kind == EmailKind.VISIT_REMINDER.value,
        ScheduledEmail.sent_at.is_(None),
    )
    if email is not None:
        query = query.filter(ScheduledEmail.to_email == email)
    return query.all()


def test_accepting_twice_keeps_one_reminder_and_one_round_of_emails(client, db, auth_headers, technician, customer, mailer, create_request):
    request = create_request(customer, scheduled_at=(utcnow() + timedelta(days=3)).isoformat())
    url = f"/api/requests/{request['id']}/accept"

    assert client.post(url, headers=auth_headers(technician)).status_code == 200
    mailer.sent.clear()
    again = client.post(url, headers=auth_headers(technician))

    assert again.status_code == 200
    assert again.json()["request"]["status"] == "em_progresso"
    assert mailer.sent == []
    assert len(_pending_reminders(db, request["id"], technician.email)) == 1


def test_decline_drops_the_technician_reminder(client, db, auth_headers, technician, customer, create_request):
    request = create_request(customer, scheduled_at=(utcnow() + timedelta(days=3)).isoformat())
    client.post(f"/api/requests/{request['id']}/accept", headers=auth_headers(technician))

    client.post(f"/api/requests/{request['id']}/decline", headers=auth_headers(technician))

    assert _pending_reminders(db, request["id"], technician.email) == []
    assert len(_pending_reminders(db, request["id"], customer.email)) == 1


def test_moving_the_visit_replaces_pending_reminders(client, db, auth_headers, technician, customer, create_request):
    request = create_request(customer, scheduled_at=(utcnow() + timedelta(days=3)).isoformat())
    client.post(f"/api/requests/{request['id']}/accept", headers=auth_headers(technician))
    new_visit = utcnow() + timedelta(days=10)

    response = client.patch(
        f"/api/requests/{request['id']}",
        json={"scheduled_at": new_visit.isoformat()},
        headers=auth_headers(customer),
    )

    assert response.status_code == 200
    reminders = _pending_reminders(db, request["id"])
    assert sorted(r.to_email for r in reminders) == sorted([customer.email, technician.email])
    for reminder in reminders:
        assert abs(as_utc(reminder.send_at) - (new_visit - timedelta(hours=24))) < timedelta(seconds=1)


def test_reassignment_moves_the_reminder_to_the_new_technician(client, db, auth_headers, admin, technician, make_user, customer, create_request):
    other = make_user(UserRole.TECHNICIAN, categories=["Canalização"])
    request = create_request(customer, scheduled_at=(utcnow() + timedelta(days=3)).isoformat())
    url = f"/api/requests/{request['id']}"

    client.patch(url, json={"technician_id": technician.id}, headers=auth_headers(admin))
    client.patch(url, json={"technician_id": technician.id}, headers=auth_headers(admin))
    assert len(_pending_reminders(db, request["id"], technician.email)) == 1

    client.patch(url, json={"technician_id": other.id}, headers=auth_headers(admin))
    assert _pending_reminders(db, request["id"], technician.email) == []
    assert len(_pending_reminders(db, request["id"], other.email)) == 1

    client.patch(url, json={"technician_id": None}, headers=auth_headers(admin))
    assert _pending_reminders(db, request["id"], other.email) == []


def test_completion_drops_pending_visit_reminders(client, db, auth_headers, technician, customer, create_request):
    request = create_request(customer, scheduled_at=(utcnow() + timedelta(days=3)).isoformat())
    client.post(f"/api/requests/{request['id']}/accept", headers=auth_headers(technician))

    client.post(f"/api/requests/{request['id']}/complete", headers=auth_headers(technician))

    assert _pending_reminders(db, request["id"]) == []
    db.expire_all()
    invitations = db.query(ScheduledEmail).filter(
        ScheduledEmail.request_id == request["id"],
        ScheduledEmail.kind == EmailKind.FEEDBACK_INVITATION.value,
    ).all()
    assert [e.to_email for e in invitations] == [customer.email]


def test_complete_schedules_feedback_invitation(client, db, auth_headers, technician, customer, create_request):
    request = create_request(customer)
    client.post(f"/api/requests/{request['id']}/accept", headers=auth_headers(technician))

    assert client.post(f"/api/requests/{request['id']}/complete", headers=auth_headers(customer)).status_code == 403

    response = client.post(f"/api/requests/{request['id']}/complete", headers=auth_headers(technician))

    assert response.status_code == 200
    assert response.json()["request"]["status"] == "concluido"
    assert response.json()["request"]["completed_at"] is not None
    invitations = db.query(ScheduledEmail).filter(ScheduledEmail.request_id == request["id"]).all()
    assert [e.to_email for e in invitations] == [customer.email]


def test_feedback_rules(client, auth_headers, admin, technician, customer, stranger, create_request):
    request = create_request(customer)
    url = f"/api/requests/{request['id']}/feedback"

    early = client.post(url, json={"rating": 5}, headers=auth_headers(customer))
    assert early.status_code == 400

    client.patch(f"/api/requests/{request['id']}", json={"status": "concluido"}, headers=auth_headers(admin))

    assert client.post(url, json={"rating": 6}, headers=auth_headers(customer)).status_code == 400
    assert client.post(url, json={"rating": 4}, headers=auth_headers(stranger)).status_code == 403

    created = client.post(url, json={"rating": 5, "comment": "Excelente"}, headers=auth_headers(customer))
    assert created.status_code == 201
    assert created.json()["user"]["first_name"] == "Ana"

    assert client.post(url, json={"rating": 3}, headers=auth_headers(customer)).status_code == 409


def test_delete_request_removes_thread_and_feedback(client, db, auth_headers, admin, technician, customer, stranger, create_request):
    request = create_request(customer)
    request_id = request["id"]
    client.patch(f"/api/requests/{request_id}", json={"technician_id": technician.id}, headers=auth_headers(admin))
    client.post(f"/api/requests/{request_id}/messages", json={"content": "Olá"}, headers=auth_headers(technician))
    client.post(f"/api/requests/{request_id}/complete", headers=auth_headers(technician))
    client.post(f"/api/requests/{request_id}/feedback", json={"rating": 4}, headers=auth_headers(customer))

    assert client.delete(f"/api/requests/{request_id}", headers=auth_headers(stranger)).status_code == 403
    assert client.delete(f"/api/requests/{request_id}", headers=auth_headers(technician)).status_code == 403

    response = client.delete(f"/api/requests/{request_id}", headers=auth_headers(customer))

    assert response.status_code == 204
    db.expire_all()
    assert db.get(MaintenanceRequest, request_id) is None
    assert db.query(Message).filter(Message.request_id == request_id).count() == 0
    assert db.query(Feedback).filter(Feedback.request_id == request_id).count() == 0
    assert db.query(ScheduledEmail).filter(
        ScheduledEmail.request_id == request_id, ScheduledEmail.sent_at.is_(None)
    ).count() == 0
