import pytest

expense_payloads = [
    {"description": "Groceries", "amount": 1000.0, "category": "Food", "date": "2024-01-01"},
    {"description": "Rent", "amount": 1500.0, "category": "Housing", "date": "2024-01-05"},
    {"description": "Dinner", "amount": 500.0, "category": "Food", "date": "2024-01-05", "notes": "birthday"},
    {"description": "Shoes", "amount": 80.0, "category": "Shopping", "date": "2024-02-02"},
]


@pytest.fixture
def seeded(client, auth_headers):
    created = []
    for payload in expense_payloads:
        response = client.post("/api/expenses", json=payload, headers=auth_headers)
        assert response.status_code == 201, response.text
        created.append(response.json())
    return created


def test_create_expense(client, auth_headers):
    response = client.post(
        "/api/expenses",
        json={"description": "Taxi", "amount": 23.5, "category": "Transportation", "date": "2024-03-01T22:15:00.000Z"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["expense_id"]
    assert body["date"] == "2024-03-01"
    assert body["amount"] == 23.5
    assert "user_id" not in body


@pytest.mark.parametrize(
    "payload",
    [
        {"description": "Bad", "amount": -5, "category": "Food", "date": "2024-01-01"},
        {"description": "Bad", "amount": 5, "category": "Groceries", "date": "2024-01-01"},
        {"description": "Bad", "amount": 5, "category": "Food", "date": "yesterday"},
        {"amount": 5, "category": "Food", "date": "2024-01-01"},
    ],
)
def test_create_expense_validation(client, auth_headers, payload):
    response = client.post("/api/expenses", json=payload, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["message"]


def test_expenses_require_authentication(client):
    assert client.get("/api/expenses").status_code == 401
    assert client.post("/api/expenses", json=expense_payloads[0]).status_code == 401
    assert client.get("/api/expenses/statistics", headers={"Authorization": "Token abc"}).status_code == 401


def test_list_expenses_sorted_newest_first(client, auth_headers, seeded):
    response = client.get("/api/expenses", headers=auth_headers)
    assert response.status_code == 200
    dates = [expense["date"] for expense in response.json()]
    assert dates == sorted(dates, reverse=True)
    assert len(dates) == 4


def test_list_expenses_with_range(client, auth_headers, seeded):
    response = client.get(
        "/api/expenses",
        params={"start_date": "2024-01-01", "end_date": "2024-01-31"},
        headers=auth_headers,
    )
    assert {expense["description"] for expense in response.json()} == {"Groceries", "Rent", "Dinner"}


def test_statistics(client, auth_headers, seeded):
    response = client.get(
        "/api/expenses/statistics",
        params={"start_date": "2024-01-01", "end_date": "2024-01-10"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()

    assert [point["date"] for point in body["trend"]] == ["2024-01-01", "2024-01-05"]
    assert body["trend"][1]["amount"] == 2000.0
    assert {item["name"]: item["value"] for item in body["distribution"]} == {"Food": 1500.0, "Housing": 1500.0}
    assert body["summary"] == {"total": 3000.0, "count": 3, "average": 300.0, "average_transaction": 1000.0}


def test_statistics_rejects_malformed_dates(client, auth_headers):
    response = client.get(
        "/api/expenses/statistics",
        params={"start_date": "2024-01-01", "end_date": "not-a-date"},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_update_expense(client, auth_headers, seeded):
    expense_id = seeded[2]["expense_id"]
    response = client.put(
        f"/api/expenses/{expense_id}",
        json={"amount": 450.0, "notes": None},
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["amount"] == 450.0
    assert body["notes"] is None
    assert body["description"] == "Dinner"


def test_update_expense_requires_fields(client, auth_headers, seeded):
    response = client.put(f"/api/expenses/{seeded[0]['expense_id']}", json={}, headers=auth_headers)
    assert response.status_code == 400


def test_delete_expense(client, auth_headers, seeded):
    expense_id = seeded[0]["expense_id"]
    response = client.delete(f"/api/expenses/{expense_id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Expense deleted successfully"}
    assert client.delete(f"/api/expenses/{expense_id}", headers=auth_headers).status_code == 404


def test_other_users_expenses_are_not_found(client, register_user, seeded):
    other_headers, _ = register_user(email="mallory@example.com", name="Mallory")
    expense_id = seeded[0]["expense_id"]

    assert client.get("/api/expenses", headers=other_headers).json() == []
    assert client.put(f"/api/expenses/{expense_id}", json={"amount": 1}, headers=other_headers).status_code == 404
    assert client.delete(f"/api/expenses/{expense_id}", headers=other_headers).status_code == 404
    stats = client.get("/api/expenses/statistics", headers=other_headers).json()
    assert stats["summary"]["count"] == 0


@pytest.mark.parametrize("raw_amount", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_expense_amount_is_rejected(client, auth_headers, seeded, raw_amount):
    json_headers = {**auth_headers, "Content-Type": "application/json"}
    created = client.post(
        "/api/expenses",
        content=f'{{"description": "Bad", "amount": {raw_amount}, "category": "Food", "date": "2024-01-01"}}',
        headers=json_headers,
    )
    assert created.status_code == 400
    assert created.json()["message"]

    expense_id = seeded[0]["expense_id"]
    updated = client.put(f"/api/expenses/{expense_id}", content=f'{{"amount": {raw_amount}}}', headers=json_headers)
    assert updated.status_code == 400

    listed = client.get("/api/expenses", headers=auth_headers).json()
    assert len(listed) == len(expense_payloads)
    assert {expense["amount"] for expense in listed} == {payload["amount"] for payload in expense_payloads}
