import calendar
from datetime import datetime, timedelta

import pytest

from database import crud
from database.models import BudgetModel, TransactionModel
from services.budget_service import BudgetService
from services.exceptions import ConflictError


def add(db_session, amount, category, date=None):
    db_session.add(TransactionModel(text="t", amount=amount, category=category, date=date or datetime.now()))
    db_session.commit()


def create_budget(client, category="Food", amount=100):
    return client.post("/api/budgets", json={"category": category, "amount": amount})


def test_create_budget_for_current_month(client):
    response = create_budget(client)
    assert response.status_code == 201
    data = response.json()["data"]
    now = datetime.now()
    assert data["category"] == "Food"
    assert data["month"] == calendar.month_name[now.month]
    assert data["year"] == now.year


def test_duplicate_budget_conflicts(client):
    create_budget(client)
    response = create_budget(client, amount=200)
    assert response.status_code == 400
    assert response.json() == {"message": "Budget for this category already exists this month"}


def test_unique_constraint_backs_up_existence_check(db_session, monkeypatch):
    crud.create_budget(db_session, "Food", 100, "January", 2024)
    monkeypatch.setattr(crud, "get_budget", lambda *args: None)
    with pytest.raises(ConflictError):
        crud.create_budget(db_session, "Food", 150, "January", 2024)
    assert db_session.query(BudgetModel).count() == 1


def test_list_budgets_computes_spent(client, db_session):
    create_budget(client)
    add(db_session, -50, "Food")
    add(db_session, -30, "Food")
    add(db_session, 100, "Income")
    add(db_session, -500, "Food", datetime.now() - timedelta(days=40))

    data = client.get("/api/budgets").json()["data"]
    assert len(data) == 1
    assert data[0]["spent"] == 80
    assert BudgetService().percentage(data[0]["spent"], data[0]["amount"]) == pytest.approx(80.0)


def test_list_budgets_only_current_month(client, db_session):
    db_session.add(BudgetModel(category="Food", amount=100, month="January", year=1999))
    db_session.commit()
    assert client.get("/api/budgets").json()["data"] == []


def test_update_budget_amount_only(client):
    budget_id = create_budget(client).json()["data"]["id"]
    response = client.put(f"/api/budgets/{budget_id}", json={"amount": 250, "category": "Transport"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["amount"] == 250
    assert data["category"] == "Food"

    assert client.put("/api/budgets/9999", json={"amount": 10}).status_code == 404


def test_delete_budget(client):
    budget_id = create_budget(client).json()["data"]["id"]
    response = client.delete(f"/api/budgets/{budget_id}")
    assert response.status_code == 200
    assert response.json()["message"] == "Budget deleted successfully"
    assert client.delete(f"/api/budgets/{budget_id}").status_code == 404


def test_alert_at_95_percent(client, db_session):
    create_budget(client)
    add(db_session, -95, "Food")

    alerts = client.get("/api/budgets/alerts").json()["data"]
    assert alerts == [{
        "category": "Food",
        "budget": 100,
        "spent": 95,
        "percentage": "95.0",
        "message": "You've used 95.0% of your Food budget!",
    }]


def test_no_alert_below_threshold(client, db_session):
    create_budget(client)
    add(db_session, -89, "Food")
    assert client.get("/api/budgets/alerts").json()["data"] == []


def test_alert_threshold_is_inclusive():
    budget = BudgetModel(category="Food", amount=100)
    spend = [TransactionModel(text="t", amount=-90, category="Food")]
    assert len(BudgetService().alerts([budget], spend)) == 1


def test_budget_amount_must_be_finite(client):
    assert create_budget(client, amount="Infinity").status_code == 400
    budget_id = create_budget(client).json()["data"]["id"]
    assert client.put(f"/api/budgets/{budget_id}", json={"amount": "NaN"}).status_code == 400
