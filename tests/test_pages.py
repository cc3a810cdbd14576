from fastapi.testclient import TestClient

from chat_relay import main
from chat_relay.main import create_app

from conftest import UPSTREAM_URL, make_settings


def test_index_page_is_served(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert "Chat Relay" in r.text
    assert "/api/chat" in r.text


def test_custom_index_template(tmp_path):
    page = tmp_path / "index.html"
    page.write_text("<h1>custom</h1>", encoding="utf-8")
    client = TestClient(create_app(make_settings(index_template=page)))
    assert client.get("/").text == "<h1>custom</h1>"


def test_missing_index_template(tmp_path, caplog):
    settings = make_settings(index_template=tmp_path / "absent.html")
    client = TestClient(create_app(settings))
    with caplog.at_level("ERROR"):
        r = client.get("/")
    assert r.status_code == 500
    assert r.text == "Could not find index.html"
    assert "absent.html" in caplog.text


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {
        "status": "ok",
        "upstream_url": UPSTREAM_URL,
        "api_key_configured": True,
    }


def test_health_reports_missing_key():
    client = TestClient(create_app(make_settings(litellm_api_key=None)))
    assert client.get("/health").json()["api_key_configured"] is False


def test_cors_headers_when_origins_configured():
    settings = make_settings(cors_origins=["https://front.example"])
    client = TestClient(create_app(settings))
    r = client.get("/health", headers={"Origin": "https://front.example"})
    assert r.headers["access-control-allow-origin"] == "https://front.example"


def test_create_app_configures_logging(monkeypatch):
    levels = []
    monkeypatch.setattr(main, "setup_logging", levels.append)
    main.create_app(make_settings(log_level="DEBUG"))
    assert levels == ["DEBUG"]
