from conftest import CALLBACK_HEADERS, TestingSessionLocal, auth_header, make_account
from donation_ledger.errors import UnexpectedError
from donation_ledger.models import Donation


def donation_payload(account_id, **overrides):
    payload = {
        "amount": 200,
        "donorName": "Somchai",
        "donorEmail": "somchai@example.com",
        "message": "Great stream!",
        "paymentMethod": "promptpay",
        "accountId": account_id,
    }
    payload.update(overrides)
    return payload


def test_create_donation_success(client):
    account_id = make_account("creator", name="The Creator")

    response = client.post("/donations", json=donation_payload(account_id))

    assert response.status_code == 201
    body = response.json()
    assert body["paymentStatus"] == "pending"
    assert body["transactionId"] is None
    assert body["recipientName"] == "The Creator"
    assert body["accountId"] == account_id
    assert body["amount"] == 200


def test_create_donation_zero_amount(client):
    account_id = make_account()

    response = client.post("/donations", json=donation_payload(account_id, amount=0))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert response.json()["error"]["field"] == "amount"
    db = TestingSessionLocal()
    assert db.query(Donation).count() == 0
    db.close()


def test_create_donation_missing_field(client):
    account_id = make_account()
    payload = donation_payload(account_id)
    del payload["donorName"]

    response = client.post("/donations", json=payload)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_create_donation_unknown_account(client):
    response = client.post("/donations", json=donation_payload("missing"))
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_create_donation_store_failure(client, mocker):
    account_id = make_account()
    mocker.patch(
        "donation_ledger.routes.LifecycleController.create_donation",
        side_effect=UnexpectedError(),
    )

    response = client.post("/donations", json=donation_payload(account_id))

    assert response.status_code == 500
    assert response.json() == {
        "error": {"code": "UNEXPECTED_ERROR", "message": "An unexpected error occurred"}
    }


def test_list_donations_requires_token(client):
    assert client.get("/me/donations").status_code == 401
    assert client.get(
        "/me/donations", headers={"Authorization": "Bearer garbage"}
    ).status_code == 401


def test_list_donations_paginates(client):
    account_id = make_account()
    for i in range(3):
        client.post("/donations", json=donation_payload(account_id, donorName=f"Fan {i}"))

    response = client.get("/me/donations?page=1&pageSize=2", headers=auth_header(account_id))

    assert response.status_code == 200
    body = response.json()
    assert len(body["items"]) == 2
    assert body["pagination"] == {"page": 1, "pageSize": 2, "total": 3, "totalPages": 2}
    assert "recipientName" not in body["items"][0]


def test_list_donations_status_filter(client):
    account_id = make_account()
    client.post("/donations", json=donation_payload(account_id))

    response = client.get("/me/donations?status=confirmed", headers=auth_header(account_id))

    assert response.status_code == 200
    assert response.json()["items"] == []
    assert response.json()["pagination"]["totalPages"] == 0


def test_list_donations_bad_status(client):
    account_id = make_account()
    response = client.get("/me/donations?status=refunded", headers=auth_header(account_id))
    assert response.status_code == 400


def test_stats_endpoint(client):
    account_id = make_account(donation_goal=1000)
    client.post("/donations", json=donation_payload(account_id))

    response = client.get("/me/stats", headers=auth_header(account_id))

    assert response.status_code == 200
    assert response.json() == {
        "lifetimeTotal": 0,
        "distinctDonorCount": 0,
        "pendingCount": 1,
        "currentPeriodTotal": 0,
        "goalProgressPercent": 0,
    }


def test_public_profile(client):
    make_account("public_one", email="secret@example.com", name="Public One", bio="bio")

    response = client.get("/users/public_one")

    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "public_one"
    assert body["totalDonations"] == 0
    assert "email" not in body
    assert "secret@example.com" not in response.text


def test_public_profile_not_found(client):
    response = client.get("/users/nobody")
    assert response.status_code == 404


def test_callback_requires_secret(client):
    response = client.post(
        "/payments/callback",
        json={"donationId": "x", "outcome": "failed"},
        headers={"X-Callback-Token": "wrong"},
    )
    assert response.status_code == 401


def test_callback_unknown_donation(client):
    response = client.post(
        "/payments/callback",
        json={"donationId": "missing", "outcome": "failed"},
        headers=CALLBACK_HEADERS,
    )
    assert response.status_code == 404


def test_create_donation_sub_cent_amount(client):
    account_id = make_account()

    response = client.post("/donations", json=donation_payload(account_id, amount=0.001))

    assert response.status_code == 400
    assert response.json()["error"]["field"] == "amount"
    db = TestingSessionLocal()
    assert db.query(Donation).count() == 0
    db.close()


def test_create_donation_timestamps_carry_utc_offset(client):
    account_id = make_account()

    body = client.post("/donations", json=donation_payload(account_id)).json()

    assert body["createdAt"].endswith("+00:00")
    assert body["updatedAt"].endswith("+00:00")


def test_list_donations_huge_page(client):
    account_id = make_account()
    client.post("/donations", json=donation_payload(account_id))

    response = client.get(
        "/me/donations?page=10000000000000000", headers=auth_header(account_id)
    )

    assert response.status_code == 200
    assert response.json()["items"] == []
    assert response.json()["pagination"]["total"] == 1


def test_list_donations_empty_status_is_ignored(client):
    account_id = make_account()
    client.post("/donations", json=donation_payload(account_id))

    response = client.get("/me/donations?status=", headers=auth_header(account_id))

    assert response.status_code == 200
    assert response.json()["pagination"]["total"] == 1
