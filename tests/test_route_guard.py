import pytest
from fastapi.testclient import TestClient


@pytest.mark.parametrize("method,path", [("get", "/apply"), ("get", "/thanks"), ("post", "/apply")])
def test_guarded_routes_redirect_to_signin_without_session(client: TestClient, notifier, method, path):
    r = getattr(client, method)(path, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/signin"
    assert notifier.messages == []


def test_guarded_routes_render_when_signed_in(signed_in_client: TestClient):
    r = signed_in_client.get("/apply")
    assert r.status_code == 200
    assert 'action="/apply"' in r.text

    r = signed_in_client.get("/thanks")
    assert r.status_code == 200
    assert "Thanks!" in r.text


def test_tampered_session_cookie_is_treated_as_signed_out(signed_in_client: TestClient):
    value = signed_in_client.cookies["invite.sid"]
    token, _, signature = value.rpartition(".")
    forged = f"{token}.{'A' if signature[0] != 'A' else 'B'}{signature[1:]}"
    signed_in_client.cookies.clear()

    r = signed_in_client.get("/apply", headers={"Cookie": f"invite.sid={forged}"}, follow_redirects=False)
    assert r.status_code == 302

    r = signed_in_client.get("/apply", headers={"Cookie": f"invite.sid={value}"})
    assert r.status_code == 200


def test_public_pages_are_open_and_personalised(client: TestClient, identity_payload):
    r = client.get("/")
    assert r.status_code == 200
    assert "Request an invite" in r.text
    assert client.get("/tos").status_code == 200

    client.post("/signin", json={"user": identity_payload})
    r = client.get("/")
    assert "Jane Doe" in r.text
    assert "jane.jpg" in r.text
