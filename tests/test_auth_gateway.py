from tests.fakes import seed_workshop

API = "/api/v1"


def test_register_login_and_me(client, fake_db):
    r = client.post(f"{API}/auth/register", json={"email": "host@example.com", "password": "s3cret-pass", "first_name": "Jo"})
    assert r.status_code == 201
    user_id = r.json()["user_id"]
    assert fake_db.row("profiles", user_id)["plan"] == "free"

    assert client.post(f"{API}/auth/register", json={"email": "host@example.com", "password": "x"}).status_code == 400
    assert client.post(f"{API}/auth/login", json={"email": "host@example.com", "password": "wrong"}).status_code == 401

    login = client.post(f"{API}/auth/login", json={"email": "host@example.com", "password": "s3cret-pass"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me["id"] == user_id
    assert me["plan"] == "free"
    assert me["limits"]["max_participants"] == 5
    assert me["limits"]["ai_enabled"] is False


def test_me_reports_pro_plan(client, pro_facilitator):
    me = client.get(f"{API}/auth/me", headers=pro_facilitator.headers).json()
    assert me["plan"] == "pro"
    assert me["limits"]["ai_enabled"] is True


def test_missing_bearer_is_rejected(client):
    r = client.get(f"{API}/workshops")
    assert r.status_code in (401, 403)


def test_invalid_bearer_is_unauthorized(client):
    r = client.get(f"{API}/workshops", headers={"Authorization": "Bearer forged"})
    assert r.status_code == 401


def test_token_lookups_are_cached(client, fake_db, facilitator):
    seed_workshop(fake_db, facilitator.id, [("B1", ["Q1"])])
    for _ in range(3):
        assert client.get(f"{API}/workshops", headers=facilitator.headers).status_code == 200
    assert fake_db.auth.get_user_calls == 1


def test_logout_drops_cached_identity(client, fake_db, facilitator):
    client.get(f"{API}/workshops", headers=facilitator.headers)
    r = client.post(f"{API}/auth/logout", headers=facilitator.headers)
    assert r.status_code == 200
    client.get(f"{API}/workshops", headers=facilitator.headers)
    assert fake_db.auth.get_user_calls == 2


def test_participant_token_cannot_reach_facilitator_routes(client, fake_db, facilitator):
    seeded = seed_workshop(fake_db, facilitator.id, [("B1", ["Q1"])])
    participant = fake_db._store("participants", {"workshop_id": seeded["workshop"]["id"], "name": "Pat"})

    r = client.get(f"{API}/workshops/{seeded['workshop']['id']}", headers={"Authorization": f"Bearer {participant['id']}"})
    assert r.status_code == 401


def test_health_and_security_headers(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy"}
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert client.get("/ready").json() == {"status": "ready"}


def test_ready_reports_storage_failure(client, fake_db):
    fake_db.fail_next("workshops", "select")
    assert client.get("/ready").status_code == 503
    assert client.get("/ready").status_code == 200
