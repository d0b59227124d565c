"""
API endpoint tests
"""

import pytest
from fastapi.testclient import TestClient

import main
from reviewtrust.content_patterns import ContentPatternAnalyzer
from reviewtrust.engine import ReviewTrustEngine


def _review(index, **overrides):
    review = {
        "id": f"r{index}",
        "rating": 5,
        "text": "Great product",
        "author": f"User{index}",
        "verified": True,
    }
    review.update(overrides)
    return review


@pytest.fixture
def client():
    """Create test client with the classifier disabled"""
    main.app.dependency_overrides[main.get_engine] = lambda: ReviewTrustEngine(
        content_analyzer=ContentPatternAnalyzer(None)
    )
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "service" in data
    assert "version" in data


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "timestamp" in data


def test_missing_reviews_is_rejected(client):
    response = client.post("/check/amazon/product", json={})
    assert response.status_code == 400
    body = response.json()
    assert body["statusCode"] == 400
    assert "reviews" in body["error"]
    assert "timestamp" in body


def test_empty_reviews_is_rejected(client):
    response = client.post("/check/amazon/product", json={"reviews": []})
    assert response.status_code == 400
    assert "at least 1" in response.json()["error"]


def test_too_many_reviews_is_rejected(client):
    reviews = [_review(index) for index in range(101)]
    response = client.post("/check/amazon/product", json={"reviews": reviews})
    assert response.status_code == 400
    assert "100" in response.json()["error"]


def test_review_missing_required_field_is_rejected(client):
    review = _review(1)
    del review["text"]
    response = client.post("/check/amazon/product", json={"reviews": [review]})
    assert response.status_code == 400
    assert "reviews.0.text" in response.json()["error"]


def test_rating_out_of_range_is_rejected(client):
    response = client.post("/check/amazon/product", json={"reviews": [_review(1, rating=6)]})
    assert response.status_code == 400
    assert "rating" in response.json()["error"]


def test_duplicate_review_ids_are_rejected(client):
    response = client.post("/check/amazon/product", json={"reviews": [_review(1), _review(1)]})
    assert response.status_code == 400
    assert "Duplicate review id" in response.json()["error"]


def test_verified_batch_scores_green(client):
    reviews = [_review(index, date=f"2024-01-{index + 1:02d}") for index in range(10)]

    response = client.post("/check/amazon/product", json={"reviews": reviews})

    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == {"trustScore": 69}
    assert body["metrics"] == {"analyzed": 10, "total": 10}
    assert body["greenFlags"] == [
        {"type": "high_verified_purchases", "confidence": 0.95, "details": {"percentage": 100}}
    ]
    assert "redFlags" not in body
    assert "timestamp" in body


def test_bombing_batch_reports_red_flag(client):
    reviews = [_review(index, date="2024-01-15", verified=False) for index in range(5)]

    response = client.post("/check/amazon/product", json={"reviews": reviews})

    assert response.status_code == 200
    body = response.json()
    assert "greenFlags" not in body
    flag = body["redFlags"][0]
    assert flag["type"] == "review_bombing"
    assert flag["details"] == {
        "date": "2024-01-15",
        "reviewCount": 5,
        "hoursSpan": 24,
        "reviewIds": ["r0", "r1", "r2", "r3", "r4"],
    }
    assert body["summary"]["trustScore"] < 50


def test_optional_review_metadata_is_accepted(client):
    review = _review(
        1,
        helpfulVotes=42,
        totalVotes=50,
        productVariation="Color: Blue",
        isVineReview=False,
        badges=["Verified Purchase"],
    )
    response = client.post("/check/amazon/product", json={"reviews": [review]})
    assert response.status_code == 200


def test_unexpected_error_returns_safe_500():
    class BrokenEngine:
        async def assess(self, reviews):
            raise RuntimeError("database password leaked")

    main.app.dependency_overrides[main.get_engine] = lambda: BrokenEngine()
    try:
        client = TestClient(main.app, raise_server_exceptions=False)
        response = client.post("/check/amazon/product", json={"reviews": [_review(1)]})
    finally:
        main.app.dependency_overrides.clear()

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "INTERNAL_SERVER_ERROR"
    assert "password" not in body["details"]


def test_lifespan_builds_engine_without_api_key():
    with TestClient(main.app) as client:
        assert main.app.state.engine.content_analyzer.client is None
        response = client.post("/check/amazon/product", json={"reviews": [_review(1)]})
    assert response.status_code == 200
    assert response.json()["summary"]["trustScore"] == 69
