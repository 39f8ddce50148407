from fastapi.testclient import TestClient

from overtaxed.main import app
from overtaxed.schemas.property import Property
from overtaxed.schemas.user import SubscriptionTier, User

client = TestClient(app)


def test_add_property_normalizes_pin(repo):
    user = repo.add_user(User(subscription_tier=SubscriptionTier.STARTER))

    response = client.post(
        "/api/properties",
        json={"pin": "16-01-123-456-0000", "address": "123 Main St", "township": "Evanston"},
        headers={"X-User-ID": user.id},
    )

    assert response.status_code == 201
    assert response.json()["pin"] == "16011234560000"
    assert len(repo.list_properties(user.id)) == 1


def test_add_property_rejects_bad_pin(repo):
    user = repo.add_user(User(subscription_tier=SubscriptionTier.STARTER))
    response = client.post("/api/properties", json={"pin": "1234"}, headers={"X-User-ID": user.id})
    assert response.status_code == 400
    assert "14 digits" in response.json()["detail"]


def test_property_limit_enforced(repo):
    user = repo.add_user(User(subscription_tier=SubscriptionTier.COMPS_ONLY))
    repo.add_property(Property(user_id=user.id, pin="16011234560000"))

    response = client.post("/api/properties", json={"pin": "16011234570000"}, headers={"X-User-ID": user.id})

    assert response.status_code == 403
    assert "COMPS_ONLY" in response.json()["detail"]


def test_portfolio_limit_mentions_custom_pricing(repo):
    user = repo.add_user(User(subscription_tier=SubscriptionTier.PORTFOLIO))
    for i in range(20):
        repo.add_property(Property(user_id=user.id, pin=f"160112345{i:05d}"))

    response = client.post("/api/properties", json={"pin": "16011239990000"}, headers={"X-User-ID": user.id})

    assert response.status_code == 403
    assert "custom pricing" in response.json()["detail"]


def test_plan_info(repo):
    user = repo.add_user(User(subscription_tier=SubscriptionTier.GROWTH))
    repo.add_property(Property(user_id=user.id, pin="16011234560000"))

    response = client.get("/api/billing/plan-info", headers={"X-User-ID": user.id})

    assert response.json() == {
        "tier": "GROWTH",
        "property_limit": 9,
        "property_count": 1,
        "can_add_property": True,
    }


def test_unknown_user(repo):
    response = client.get("/api/billing/plan-info", headers={"X-User-ID": "nobody"})
    assert response.status_code == 404
