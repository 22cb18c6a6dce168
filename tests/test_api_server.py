import pytest
from fastapi.testclient import TestClient

from api_server import app
from database import get_db


@pytest.fixture
def client(session_factory, family_users):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(token="token-asha"):
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_or_unknown_token_is_rejected(client):
    assert client.get("/api/expenses").status_code == 401
    assert client.get("/api/expenses", headers=auth("nope")).status_code == 401
    assert client.get("/api/expenses", headers={"Authorization": "Basic abc"}).status_code == 401


def test_add_expense_classifies_description(client, family_users):
    response = client.post("/api/expenses", json={"description": "uber to office", "amount": 250}, headers=auth())
    assert response.status_code == 201
    body = response.json()
    assert body["category"] == "Transport"
    assert body["amount"] == 250
    assert body["userId"] == family_users["asha"]
    assert body["familyId"] == family_users["family"]
    assert "createdAt" in body


def test_add_expense_normalizes_category(client):
    response = client.post(
        "/api/expenses",
        json={"description": "misc", "amount": 10, "category": "others"},
        headers=auth(),
    )
    assert response.json()["category"] == "Other"


def test_add_expense_rejects_unknown_category(client):
    response = client.post(
        "/api/expenses",
        json={"description": "coins", "amount": 10, "category": "Crypto"},
        headers=auth(),
    )
    assert response.status_code == 422


def test_add_expense_rejects_negative_amount(client):
    response = client.post("/api/expenses", json={"description": "refund", "amount": -5}, headers=auth())
    assert response.status_code == 422


def test_personal_and_family_listing(client):
    client.post("/api/expenses", json={"description": "groceries", "amount": 800}, headers=auth())
    client.post("/api/expenses", json={"description": "petrol", "amount": 500}, headers=auth("token-ravi"))
    client.post("/api/expenses", json={"description": "books", "amount": 300}, headers=auth("token-solo"))

    mine = client.get("/api/expenses", headers=auth()).json()
    assert [e["description"] for e in mine] == ["groceries"]

    family = client.get("/api/expenses/family", headers=auth()).json()
    assert sorted(e["description"] for e in family) == ["groceries", "petrol"]

    solo = client.get("/api/expenses/family", headers=auth("token-solo")).json()
    assert [e["description"] for e in solo] == ["books"]


def test_chat_expense(client):
    client.post("/api/expenses", json={"description": "petrol", "amount": 200}, headers=auth("token-ravi"))
    response = client.post("/api/chat/expense", json={"message": "500 rupees for food"}, headers=auth())

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Logged ₹500 under Food"
    assert body["expense"]["amount"] == 500
    assert body["expense"]["category"] == "Food"
    assert body["parsedData"]["confidence"] == 1.0
    assert body["parsedData"]["intent"] == "log_expense"
    assert body["familyTotal"] == 700
    assert body["language"] == {"name": "English", "code": "en"}


def test_chat_expense_without_amount(client):
    response = client.post("/api/chat/expense", json={"message": "lunch with the team"}, headers=auth())
    assert response.status_code == 422
    assert "couldn't find an amount" in response.json()["detail"]
    assert client.get("/api/expenses", headers=auth()).json() == []


def test_chat_query_breakdown(client):
    client.post("/api/chat/expense", json={"message": "500 for food"}, headers=auth())
    client.post("/api/chat/expense", json={"message": "800 for petrol"}, headers=auth("token-ravi"))

    body = client.post("/api/chat/query", json={"message": "category breakdown"}, headers=auth()).json()
    assert body["message"] == "Your top spending categories:\n• Transport: ₹800\n• Food: ₹500"
    assert body["context"]["kind"] == "categoryBreakdown"
    assert list(body["context"]["totals"]) == ["Transport", "Food"]


def test_chat_query_help(client):
    body = client.post("/api/chat/query", json={"message": "hello"}, headers=auth()).json()
    assert body["context"]["kind"] == "help"
    assert body["message"].startswith("I can help you with:")


def test_stats(client):
    client.post("/api/chat/expense", json={"message": "500 for food"}, headers=auth())
    client.post("/api/chat/expense", json={"message": "200 for fuel"}, headers=auth("token-ravi"))

    personal = client.get("/api/expenses/stats", headers=auth()).json()
    assert personal["total"] == 500
    assert personal["count"] == 1

    family = client.get("/api/expenses/stats", params={"scope": "family"}, headers=auth()).json()
    assert family["total"] == 700
    assert family["monthTotal"] == 700
    assert family["weekTotal"] == 700
    assert family["categoryBreakdown"] == {"Food": 500, "Transport": 200}

    assert client.get("/api/expenses/stats", params={"scope": "world"}, headers=auth()).status_code == 422


def test_oversized_amounts_are_rejected(client):
    response = client.post("/api/chat/expense", json={"message": "₹" + "9" * 25 + " for food"}, headers=auth())
    assert response.status_code == 422
    assert response.json()["detail"] == "That amount is too large to record."

    response = client.post("/api/expenses", json={"description": "yacht", "amount": 1e20}, headers=auth())
    assert response.status_code == 422

    assert client.post("/api/chat/expense", json={"message": "500 for food"}, headers=auth()).status_code == 200
