import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from spotwise.api.v1 import events
from spotwise.tests.helpers import ORIGIN, auth, north_of

API = "/api/v1"


def register(client, role="seeker", email=None, at=ORIGIN, skills=None, **extra):
    body = {
        "userName": f"{role} user",
        "email": email or f"{role}@example.com",
        "password": "secret123",
        "role": role,
        "contactNumber": "9876543210",
        "location": {"type": "Point", "coordinates": list(at)},
    }
    if role == "provider":
        body["skills"] = skills or ["plumbing"]
    body.update(extra)
    r = client.post(f"{API}/auth/register", json=body)
    assert r.status_code == 201, r.text
    return r.json()


def login(client, email, password="secret123"):
    r = client.post(f"{API}/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()


def create_request(client, token, duration=30, at=ORIGIN):
    r = client.post(
        f"{API}/requests",
        json={
            "category": "plumbing",
            "description": "Leaking kitchen tap",
            "contactNumber": "9876543210",
            "location": {"type": "Point", "coordinates": list(at)},
            "duration": duration,
        },
        headers=auth(token),
    )
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture
def actors(client):
    seeker = register(client, "seeker", "asha@example.com")
    register(client, "provider", "ravi@example.com", at=north_of(ORIGIN, 2000))
    # login brings the provider online
    provider = login(client, "ravi@example.com")
    return seeker, provider


# ---------------------------
# SYSTEM / AUTH
# ---------------------------

def test_health_carries_request_id(client):
    r = client.get(f"{API}/health", headers={"X-Request-Id": "abc-123"})
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.headers["X-Request-Id"] == "abc-123"


def test_register_validation(client):
    r = client.post(
        f"{API}/auth/register",
        json={"userName": "x", "email": "bad", "password": "secret123", "role": "seeker"},
    )
    assert r.status_code == 422

    r = client.post(
        f"{API}/auth/register",
        json={"userName": "x", "email": "p@example.com", "password": "secret123", "role": "provider"},
    )
    assert r.status_code == 422

    register(client, "seeker", "dup@example.com")
    r = client.post(
        f"{API}/auth/register",
        json={"userName": "x", "email": "dup@example.com", "password": "secret123", "role": "seeker"},
    )
    assert r.status_code == 422
    assert r.json()["detail"]["error"] == "ValidationError"


def test_login_logout_toggle_provider_status(client):
    register(client, "provider", "p@example.com")
    token = login(client, "p@example.com")["access_token"]

    assert client.get(f"{API}/users/status", headers=auth(token)).json() == {"status": "online"}
    assert client.post(f"{API}/auth/logout", headers=auth(token)).status_code == 200
    assert client.get(f"{API}/users/status", headers=auth(token)).json() == {"status": "offline"}

    bad = client.post(f"{API}/auth/login", json={"email": "p@example.com", "password": "nope"})
    assert bad.status_code == 401


def test_me_and_profile(client, actors):
    seeker, _ = actors
    me = client.get(f"{API}/auth/me", headers=auth(seeker["access_token"])).json()
    assert me["email"] == "asha@example.com"
    assert me["location"]["coordinates"] == list(ORIGIN)

    r = client.patch(
        f"{API}/users/profile",
        json={"userName": "Asha K", "address": {"city": "Bengaluru", "country": "IN"}},
        headers=auth(seeker["access_token"]),
    )
    assert r.status_code == 200
    assert r.json()["userName"] == "Asha K"
    assert r.json()["address"]["city"] == "Bengaluru"

    r = client.patch(f"{API}/users/profile", json={"skills": ["plumbing"]}, headers=auth(seeker["access_token"]))
    assert r.status_code == 422


def test_missing_or_bad_token(client):
    assert client.get(f"{API}/requests/history").status_code in (401, 403)
    r = client.get(f"{API}/requests/history", headers=auth("garbage"))
    assert r.status_code == 401
    assert r.json()["detail"]["error"] == "AuthenticationError"


# ---------------------------
# LIFECYCLE OVER HTTP
# ---------------------------

def test_full_lifecycle(client, actors):
    seeker, provider = actors
    s, p = auth(seeker["access_token"]), auth(provider["access_token"])

    req = create_request(client, seeker["access_token"])
    assert req["status"] == "pending"

    active = client.get(f"{API}/requests/active", headers=p).json()
    assert [a["id"] for a in active] == [req["id"]]
    assert active[0]["distanceM"] == pytest.approx(2000, rel=1e-3)
    assert active[0]["seeker"]["id"] == seeker["userId"]

    accepted = client.patch(f"{API}/requests/accept/{req['id']}", headers=p)
    assert accepted.status_code == 200
    assert accepted.json()["request"]["status"] == "in-progress"
    assert accepted.json()["request"]["generatedPin"] is None

    again = client.patch(f"{API}/requests/accept/{req['id']}", headers=p)
    assert again.status_code == 409
    assert again.json()["detail"]["error"] == "ProviderBusy"

    pin = client.get(f"{API}/requests/pin/{req['id']}", headers=s).json()["generatedPin"]
    assert len(pin) == 6

    wrong = client.patch(f"{API}/requests/complete/{req['id']}", json={"pin": "000000"}, headers=p)
    assert wrong.status_code == 400
    assert wrong.json()["detail"]["error"] == "InvalidPin"
    assert wrong.json()["detail"]["remaining_attempts"] == 4

    done = client.patch(f"{API}/requests/complete/{req['id']}", json={"pin": pin}, headers=p)
    assert done.status_code == 200
    assert done.json()["request"]["status"] == "completed"
    assert client.get(f"{API}/users/status", headers=p).json() == {"status": "online"}

    history = client.get(f"{API}/requests/history", headers=s).json()
    assert history["role"] == "seeker"
    assert history["history"][0]["status"] == "completed"
    assert history["history"][0]["provider"]["id"] == provider["userId"]


def test_error_statuses(client, actors):
    seeker, provider = actors
    s, p = auth(seeker["access_token"]), auth(provider["access_token"])
    req = create_request(client, seeker["access_token"])

    assert client.patch(f"{API}/requests/accept/{req['id']}", headers=s).status_code == 403
    assert client.patch(f"{API}/requests/accept/not-a-uuid", headers=p).status_code == 404
    assert client.get(f"{API}/requests/pin/{req['id']}", headers=s).status_code == 409
    assert client.get(f"{API}/requests/active", headers=s).status_code == 403

    bad = client.post(
        f"{API}/requests",
        json={"category": "plumbing", "description": "x", "contactNumber": "1", "duration": 0,
              "location": {"type": "Point", "coordinates": [77.5, 12.9]}},
        headers=s,
    )
    assert bad.status_code == 422

    assert client.patch(f"{API}/requests/cancel/{req['id']}", headers=s).status_code == 200
    second = client.patch(f"{API}/requests/cancel/{req['id']}", headers=s)
    assert second.status_code == 409
    assert second.json()["detail"]["error"] == "InvalidState"


def test_expired_request_visible_after_90_seconds(client, clock, actors):
    seeker, provider = actors
    req = create_request(client, seeker["access_token"], duration=1)

    clock.advance(seconds=90)

    history = client.get(f"{API}/requests/history", headers=auth(seeker["access_token"])).json()
    assert history["history"][0]["id"] == req["id"]
    assert history["history"][0]["status"] == "expired"
    assert client.get(f"{API}/requests/active", headers=auth(provider["access_token"])).json() == []


def test_manual_status_override_rules(client, actors):
    seeker, provider = actors
    p = auth(provider["access_token"])

    assert client.patch(f"{API}/users/status", json={"status": "active"}, headers=p).json() == {"status": "active"}
    assert client.patch(f"{API}/users/status", json={"status": "in-progress"}, headers=p).status_code == 409
    assert client.patch(f"{API}/users/status", json={"status": "sleeping"}, headers=p).status_code == 422
    assert client.get(f"{API}/users/status", headers=auth(seeker["access_token"])).status_code == 403

    req = create_request(client, seeker["access_token"])
    client.patch(f"{API}/requests/accept/{req['id']}", headers=p)
    blocked = client.patch(f"{API}/users/status", json={"status": "offline"}, headers=p)
    assert blocked.status_code == 409
    assert client.get(f"{API}/users/status", headers=p).json() == {"status": "in-progress"}


def test_location_update(client, actors):
    seeker, provider = actors
    r = client.patch(
        f"{API}/users/location",
        json={"location": {"type": "Point", "coordinates": [77.6, 12.98]}},
        headers=auth(provider["access_token"]),
    )
    assert r.status_code == 200
    assert r.json()["broadcast"] is True

    r = client.patch(
        f"{API}/users/location",
        json={"location": {"type": "Point", "coordinates": [77.6, 12.98]}},
        headers=auth(seeker["access_token"]),
    )
    assert r.status_code == 403

    r = client.patch(
        f"{API}/users/location",
        json={"location": {"type": "Point", "coordinates": [277.6, 12.98]}},
        headers=auth(provider["access_token"]),
    )
    assert r.status_code == 422


# ---------------------------
# REALTIME
# ---------------------------

def test_ws_rejects_bad_token(client):
    with client.websocket_connect("/ws?token=garbage") as ws:
        msg = ws.receive_json()
        assert msg["event"] == "authError"
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
    assert exc.value.code == 4401


def test_ws_closes_when_sending_fails(client, actors, monkeypatch):
    seeker, _ = actors

    async def send_times_out(websocket, sub, heartbeat_s, send_timeout_s):
        raise asyncio.TimeoutError()

    monkeypatch.setattr(events, "_pump", send_times_out)
    with client.websocket_connect(f"/ws?token={seeker['access_token']}") as ws:
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
    assert exc.value.code == events.WS_SEND_FAILED


def test_sse_rejects_bad_token(client):
    r = client.get("/events?token=garbage")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")
    assert "event: authError" in r.text


def test_ws_lifecycle_events(client, actors):
    seeker, provider = actors

    with client.websocket_connect(f"/ws?token={seeker['access_token']}") as seeker_ws, \
            client.websocket_connect(f"/ws?token={provider['access_token']}") as provider_ws:
        assert seeker_ws.receive_json()["event"] == "connected"
        hello = provider_ws.receive_json()
        assert hello["event"] == "connected"
        assert hello["data"]["role"] == "provider"

        req = create_request(client, seeker["access_token"])
        note = provider_ws.receive_json()
        assert note["event"] == "newRequestNotification"
        assert note["data"]["id"] == req["id"]

        client.patch(f"{API}/requests/accept/{req['id']}", headers=auth(provider["access_token"]))

        to_seeker = seeker_ws.receive_json()
        assert to_seeker["event"] == "requestUpdated"
        assert to_seeker["data"]["status"] == "in-progress"
        assert len(to_seeker["data"]["generatedPin"]) == 6

        to_provider = provider_ws.receive_json()
        assert to_provider["event"] == "requestUpdated"
        assert to_provider["data"]["generatedPin"] is None


def test_ws_client_messages(client, actors):
    seeker, provider = actors

    with client.websocket_connect(f"/ws?token={seeker['access_token']}") as ws:
        ws.receive_json()

        ws.send_json({"type": "ping"})
        assert ws.receive_json()["event"] == "pong"

        ws.send_text("{not json")
        err = ws.receive_json()
        assert err["event"] == "serverError"

        ws.send_json({"type": "nearbyProviders", "category": "plumbing"})
        nearby = ws.receive_json()
        assert nearby["event"] == "nearbyProvidersUpdate"
        assert [p["id"] for p in nearby["data"]["providers"]] == [provider["userId"]]

        # now watching that provider
        client.patch(
            f"{API}/users/location",
            json={"location": {"type": "Point", "coordinates": list(north_of(ORIGIN, 1500))}},
            headers=auth(provider["access_token"]),
        )
        moved = ws.receive_json()
        assert moved["event"] == "providerLocationUpdated"
        assert moved["data"]["providerId"] == provider["userId"]

        ws.send_json({"type": "locationUpdate", "location": {"type": "Point", "coordinates": [77.6, 12.9]}})
        denied = ws.receive_json()
        assert denied["event"] == "serverError"
        assert denied["data"]["error"] == "AuthorizationError"
