import pytest

goal_payload = {
    "title": "Emergency fund",
    "target_amount": 300.0,
    "category": "Emergency",
    "target_date": "2099-12-31",
    "description": "Three months of rent",
}


@pytest.fixture
def goal(client, auth_headers):
    response = client.post("/api/savings-goals", json=goal_payload, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_goal(goal):
    assert goal["current_amount"] == 0
    assert goal["is_completed"] is False
    assert goal["progress"] == 0
    assert goal["contributions"] == []
    assert goal["required_monthly_saving"] > 0


@pytest.mark.parametrize(
    "overrides",
    [{"target_amount": 0}, {"category": "Boat"}, {"target_date": "someday"}, {"title": ""}],
)
def test_create_goal_validation(client, auth_headers, overrides):
    response = client.post("/api/savings-goals", json={**goal_payload, **overrides}, headers=auth_headers)
    assert response.status_code == 400


def test_list_and_get_goal(client, auth_headers, goal):
    listed = client.get("/api/savings-goals", headers=auth_headers).json()
    assert [item["goal_id"] for item in listed] == [goal["goal_id"]]

    fetched = client.get(f"/api/savings-goals/{goal['goal_id']}", headers=auth_headers)
    assert fetched.status_code == 200
    assert fetched.json()["title"] == "Emergency fund"


def test_contributions_complete_goal(client, auth_headers, goal):
    url = f"/api/savings-goals/{goal['goal_id']}/contributions"
    first = client.post(url, json={"amount": 100, "note": "payday"}, headers=auth_headers).json()
    assert first["current_amount"] == 100
    assert first["is_completed"] is False
    assert first["contributions"][0]["note"] == "payday"

    second = client.post(url, json={"amount": 200}, headers=auth_headers).json()
    assert second["current_amount"] == 300
    assert second["is_completed"] is True
    assert second["progress"] == 100.0
    assert second["required_monthly_saving"] == 0
    assert len(second["contributions"]) == 2


@pytest.mark.parametrize("amount", [0, -25])
def test_invalid_contribution_amount(client, auth_headers, goal, amount):
    url = f"/api/savings-goals/{goal['goal_id']}/contributions"
    response = client.post(url, json={"amount": amount}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json() == {"message": "Please provide a valid contribution amount"}

    fetched = client.get(f"/api/savings-goals/{goal['goal_id']}", headers=auth_headers).json()
    assert fetched["current_amount"] == 0


def test_update_goal_fields_and_adjustment(client, auth_headers, goal):
    url = f"/api/savings-goals/{goal['goal_id']}"
    response = client.put(url, json={"title": "Rainy day", "target_amount": 0, "current_amount": 350}, headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Rainy day"
    # a zero target is treated as "unchanged"
    assert body["target_amount"] == 300
    assert body["current_amount"] == 350
    assert body["is_completed"] is True
    assert body["contributions"][-1]["kind"] == "adjustment"

    lowered = client.put(url, json={"current_amount": 0}, headers=auth_headers).json()
    assert lowered["current_amount"] == 0
    assert lowered["is_completed"] is False
    assert sum(c["amount"] for c in lowered["contributions"]) == 0


def test_delete_goal(client, auth_headers, goal):
    url = f"/api/savings-goals/{goal['goal_id']}"
    assert client.delete(url, headers=auth_headers).json() == {"message": "Savings goal deleted successfully"}
    assert client.get(url, headers=auth_headers).status_code == 404
    assert client.post(f"{url}/contributions", json={"amount": 10}, headers=auth_headers).status_code == 404


def test_other_users_goals_are_not_found(client, register_user, goal):
    other_headers, _ = register_user(email="mallory@example.com", name="Mallory")
    url = f"/api/savings-goals/{goal['goal_id']}"

    assert client.get("/api/savings-goals", headers=other_headers).json() == []
    assert client.get(url, headers=other_headers).status_code == 404
    assert client.put(url, json={"title": "Mine now"}, headers=other_headers).status_code == 404
    assert client.post(f"{url}/contributions", json={"amount": 10}, headers=other_headers).status_code == 404
    assert client.delete(url, headers=other_headers).status_code == 404


def test_health(client):
    assert client.get("/api/health").json()["status"] == "healthy"
    status = client.get("/api/status").json()
    assert status["overall_status"] == "healthy"
    assert set(status["services"]["dynamodb"]["tables"]) == {"users", "expenses", "savings_goals"}


@pytest.mark.parametrize("raw_amount", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_contribution_is_rejected(client, auth_headers, goal, raw_amount):
    url = f"/api/savings-goals/{goal['goal_id']}/contributions"
    response = client.post(
        url,
        content=f'{{"amount": {raw_amount}}}',
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["message"]

    fetched = client.get(f"/api/savings-goals/{goal['goal_id']}", headers=auth_headers).json()
    assert fetched["current_amount"] == 0
    assert fetched["contributions"] == []


@pytest.mark.parametrize("field", ["target_amount", "current_amount"])
def test_non_finite_goal_amounts_are_rejected(client, auth_headers, goal, field):
    url = f"/api/savings-goals/{goal['goal_id']}"
    response = client.put(
        url,
        content=f'{{"{field}": Infinity}}',
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400

    created = client.post(
        "/api/savings-goals",
        content='{"title": "Moon", "target_amount": NaN, "category": "Other", "target_date": "2099-01-01"}',
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert created.status_code == 400
