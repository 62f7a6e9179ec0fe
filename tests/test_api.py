from decimal import Decimal


def _create_account(client, headers, balance="100"):
    resp = client.post("/accounts", json={"name": "Main", "type": "bank", "balance": balance}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _create_category(client, headers, type="expense"):
    resp = client.post(
        "/categories",
        json={"name": type.title(), "type": type, "color": "#f43f5e"},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def _balance(client, headers, account_id):
    resp = client.get("/accounts", headers=headers)
    [account] = [a for a in resp.json() if a["id"] == account_id]
    return Decimal(str(account["balance"]))


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_register_login_and_me(client):
    resp = client.post("/auth/register", json={"email": "New@Example.com", "password": "secret123"})
    assert resp.status_code == 201, resp.text
    assert resp.json()["user"]["email"] == "new@example.com"

    resp = client.post("/auth/login", json={"email": "new@example.com", "password": "secret123"})
    assert resp.status_code == 200
    token = resp.json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    me = client.get("/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["default_currency"] == "BDT"

    categories = client.get("/categories", headers=headers).json()
    assert {c["name"] for c in categories} >= {"Salary", "Food & Dining"}


def test_duplicate_registration_conflicts(client):
    payload = {"email": "dup@example.com", "password": "secret123"}
    assert client.post("/auth/register", json=payload).status_code == 201
    assert client.post("/auth/register", json=payload).status_code == 409


def test_wrong_password_is_rejected(client, user):
    resp = client.post("/auth/login", json={"email": user.email, "password": "nope-nope"})
    assert resp.status_code == 401


def test_requests_without_identity_are_rejected(client):
    assert client.get("/accounts").status_code == 401
    resp = client.get("/accounts", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


def test_transaction_flow_over_http(client, auth_headers):
    account = _create_account(client, auth_headers, balance="100")
    category = _create_category(client, auth_headers)

    resp = client.post(
        "/transactions",
        json={"account_id": account["id"], "category_id": category["id"], "amount": "30", "type": "expense"},
        headers=auth_headers,
    )
    assert resp.status_code == 201, resp.text
    transaction_id = resp.json()["id"]
    assert _balance(client, auth_headers, account["id"]) == Decimal("70")

    resp = client.post(
        "/transactions",
        json={"account_id": account["id"], "category_id": category["id"], "amount": "100", "type": "expense"},
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "insufficient_balance"
    assert _balance(client, auth_headers, account["id"]) == Decimal("70")
    assert len(client.get("/transactions", headers=auth_headers).json()) == 1

    assert client.delete(f"/transactions/{transaction_id}", headers=auth_headers).status_code == 204
    assert _balance(client, auth_headers, account["id"]) == Decimal("100")


def test_category_mismatch_is_a_validation_error(client, auth_headers):
    account = _create_account(client, auth_headers)
    income = _create_category(client, auth_headers, type="income")

    resp = client.post(
        "/transactions",
        json={"account_id": account["id"], "category_id": income["id"], "amount": "5", "type": "expense"},
        headers=auth_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "validation"


def test_non_positive_amount_fails_request_validation(client, auth_headers):
    account = _create_account(client, auth_headers)
    category = _create_category(client, auth_headers)

    resp = client.post(
        "/transactions",
        json={"account_id": account["id"], "category_id": category["id"], "amount": "0", "type": "expense"},
        headers=auth_headers,
    )

    assert resp.status_code == 422


def test_other_users_account_is_not_found(client, auth_headers, other_headers):
    account = _create_account(client, auth_headers)

    resp = client.put(f"/accounts/{account['id']}", json={"name": "Mine now"}, headers=other_headers)
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Account not found", "error": "not_found"}
    assert client.delete(f"/accounts/{account['id']}", headers=other_headers).status_code == 404


def test_account_update_can_set_balance(client, auth_headers):
    account = _create_account(client, auth_headers, balance="10")

    resp = client.put(
        f"/accounts/{account['id']}",
        json={"balance": "25.50", "color": "#000000"},
        headers=auth_headers,
    )

    assert resp.status_code == 200, resp.text
    assert Decimal(str(resp.json()["balance"])) == Decimal("25.50")
    assert resp.json()["color"] == "#000000"


def test_deleting_account_removes_its_transactions(client, auth_headers):
    account = _create_account(client, auth_headers)
    category = _create_category(client, auth_headers)
    client.post(
        "/transactions",
        json={"account_id": account["id"], "category_id": category["id"], "amount": "5", "type": "expense"},
        headers=auth_headers,
    )

    assert client.delete(f"/accounts/{account['id']}", headers=auth_headers).status_code == 204
    assert client.get("/transactions", headers=auth_headers).json() == []


def test_borrowing_lifecycle_over_http(client, auth_headers):
    account = _create_account(client, auth_headers, balance="200")

    resp = client.post(
        "/borrowings",
        json={"friend_name": "Alex", "type": "lend", "total_amount": "50", "initial_account_id": account["id"]},
        headers=auth_headers,
    )
    assert resp.status_code == 201, resp.text
    borrowing = resp.json()
    assert borrowing["status"] == "active"
    assert _balance(client, auth_headers, account["id"]) == Decimal("150")

    resp = client.post(
        f"/borrowings/{borrowing['id']}/pay",
        json={"amount": "50", "account_id": account["id"]},
        headers=auth_headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["borrowing"]["status"] == "completed"
    assert Decimal(str(body["borrowing"]["remaining_amount"])) == Decimal("0")
    assert body["transaction"]["type"] == "return"
    assert _balance(client, auth_headers, account["id"]) == Decimal("200")

    resp = client.post(
        f"/borrowings/{borrowing['id']}/pay",
        json={"amount": "1", "account_id": account["id"]},
        headers=auth_headers,
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "invalid_state"

    detail = client.get(f"/borrowings/{borrowing['id']}", headers=auth_headers).json()
    assert len(detail["transactions"]) == 1

    completed = client.get("/borrowings", params={"status": "completed"}, headers=auth_headers).json()
    assert [b["id"] for b in completed] == [borrowing["id"]]


def test_allocation_mark_paid_over_http(client, auth_headers):
    account = _create_account(client, auth_headers, balance="20")
    resp = client.post(
        "/allocations",
        json={"name": "Internet", "amount": "20", "type": "expense"},
        headers=auth_headers,
    )
    assert resp.status_code == 201, resp.text
    allocation = resp.json()

    resp = client.post(
        f"/allocations/{allocation['id']}/mark-paid",
        json={"account_id": account["id"], "month": "2025-01"},
        headers=auth_headers,
    )
    assert resp.status_code == 200, resp.text
    assert [p["month"] for p in resp.json()["monthly_payments"]] == ["2025-01"]
    assert _balance(client, auth_headers, account["id"]) == Decimal("0")

    resp = client.post(
        f"/allocations/{allocation['id']}/mark-paid",
        json={"account_id": account["id"], "month": "2025-01"},
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "insufficient_balance"

    resp = client.post(
        f"/allocations/{allocation['id']}/mark-paid",
        json={"account_id": account["id"], "month": "01-2025"},
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation"
