from fastapi.testclient import TestClient


def test_health(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["session_store"] == "MemorySessionStore"


def test_request_id_is_echoed(client: TestClient):
    r = client.get("/", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Process-Time" in r.headers

    generated = client.get("/").headers["X-Request-ID"]
    assert generated and generated != "abc-123"


def test_pages_carry_analytics_token_and_title(client: TestClient, settings):
    for path in ("/", "/tos", "/signin"):
        r = client.get(path)
        assert r.status_code == 200
        assert settings.ga_token in r.text
        assert "Slack Invite Request" in r.text


def test_tos_lists_sections(client: TestClient):
    r = client.get("/tos")
    assert "Terms of Service" in r.text
    assert "Attachments" in r.text


def test_unknown_path_is_404(client: TestClient):
    assert client.get("/no-such-page").status_code == 404


def test_unexpected_error_is_plain_500(app, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("template store exploded")

    monkeypatch.setattr(app.state.strings, "context", boom)
    client = TestClient(app, raise_server_exceptions=False)

    r = client.get("/tos")
    assert r.status_code == 500
    assert r.text == "Internal Server Error"


def test_lifespan_creates_images_dir_and_closes_backends(app, settings):
    assert not settings.images_dir.exists()
    with TestClient(app) as client:
        assert settings.images_dir.is_dir()
        assert client.get("/health").status_code == 200
