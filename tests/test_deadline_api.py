from fastapi.testclient import TestClient

from overtaxed.main import app

client = TestClient(app)


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_lookup_known_township():
    response = client.get("/api/properties/lookup-deadline", params={"township": "Evanston Township"})
    assert response.status_code == 200
    data = response.json()
    assert data["notice_date"] == "2025-04-09"
    assert data["last_file_date"] == "2025-05-21"
    assert "Evanston Township" in data["note"]


def test_lookup_unknown_township_is_not_an_error():
    response = client.get("/api/properties/lookup-deadline", params={"township": "Atlantis"})
    assert response.status_code == 200
    data = response.json()
    assert data["notice_date"] is None
    assert data["calendar_url"].startswith("https://")


def test_lookup_without_township():
    response = client.get("/api/properties/lookup-deadline")
    assert response.status_code == 200
    assert response.json()["township"] is None


def test_active_townships():
    response = client.get("/api/schedule/active-townships", params={"date": "2025-06-15"})
    assert response.status_code == 200
    data = response.json()
    assert data["in_reassessment_season"] is True
    assert "evanston" in data["active_townships"]
    assert "rogers park" not in data["active_townships"]


def test_active_townships_rejects_bad_date():
    response = client.get("/api/schedule/active-townships", params={"date": "June 15"})
    assert response.status_code == 422
