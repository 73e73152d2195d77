import json
from decimal import Decimal

import pytest

from api import payments
from api.models import Payment

pytestmark = pytest.mark.django_db

VISA = "4111 1111 1111 1111"


@pytest.mark.parametrize("number, brand", [
    (VISA, "Visa"),
    ("5500000000000004", "Mastercard"),
    ("340000000000009", "American Express"),
    ("6011000000000004", "Discover"),
    ("6500000000000002", "Discover"),
    ("3530111333300000", "JCB"),
    ("6304000000000000", "RuPay"),
    ("9999000000000000", "Unknown"),
])
def test_detect_card_brand(number, brand):
    assert payments.detect_card_brand(number) == brand


def test_helpers():
    assert payments.calculate_tax(Decimal("499.00")) == Decimal("89.82")
    assert payments.mask_card(VISA) == {"card_last_four": "1111", "card_brand": "Visa"}
    assert payments.authorize_card(VISA)
    assert not payments.authorize_card("4111 1111")
    assert payments.authorize_upi("alice@upi")
    assert not payments.authorize_upi("alice")
    assert payments.generate_transaction_id().startswith("TXN")


def _pay(client, **fields):
    data = {
        "planName": "Pro",
        "amount": "499.00",
        "paymentMethod": "card",
        "personalDetails": {"fullName": "Alice", "email": "alice@example.com"},
        **fields,
    }
    return client.post("/api/payments/process/", data, format="json")


def test_card_payment_stores_only_masked_details(api_client):
    resp = _pay(api_client, cardNumber=VISA, cardName="Alice", cvv="123")
    assert resp.status_code == 201
    body = resp.json()["payment"]
    assert body["status"] == "completed"
    assert body["totalAmount"] == "588.82"
    assert body["paymentDetails"] == {"card_last_four": "1111", "card_brand": "Visa"}

    payment = Payment.objects.get(transaction_id=body["transactionId"])
    stored = json.dumps({
        "details": payment.payment_details,
        "personal": payment.personal_details,
        "error": payment.error_message,
    })
    assert "4111111111111111" not in stored and VISA not in stored
    assert "123" not in json.dumps(payment.payment_details)
    assert "cvv" not in resp.content.decode().lower()


def test_personal_details_keep_only_known_fields(api_client):
    resp = _pay(
        api_client,
        cardNumber=VISA,
        cardName="Alice",
        cvv="123",
        personalDetails={"fullName": "Alice", "city": "Pune", "cardNumber": VISA, "cvv": "123"},
    )
    assert resp.status_code == 201
    payment = Payment.objects.get(transaction_id=resp.json()["payment"]["transactionId"])
    assert payment.personal_details == {"fullName": "Alice", "city": "Pune"}


def test_personal_details_are_validated(api_client):
    resp = _pay(api_client, paymentMethod="upi", upiId="alice@okbank", personalDetails={"email": "not-an-email"})
    assert resp.status_code == 400
    assert Payment.objects.count() == 0


def test_declined_card_is_recorded_as_failed(api_client):
    resp = _pay(api_client, cardNumber="4111 1111 1111", cardName="Alice", cvv="123")
    assert resp.status_code == 400
    payment = Payment.objects.get(transaction_id=resp.json()["transactionId"])
    assert payment.payment_status == Payment.Status.FAILED
    assert payment.error_message == "Card payment declined"
    assert payment.payment_details == {"card_last_four": "1111", "card_brand": "Visa"}


def test_card_details_are_required(api_client):
    assert _pay(api_client, cardNumber=VISA).status_code == 400
    assert Payment.objects.count() == 0


def test_upi_payment(api_client):
    resp = _pay(api_client, paymentMethod="upi", upiId="alice@okbank")
    assert resp.status_code == 201
    assert resp.json()["payment"]["paymentDetails"] == {"upi_id": "alice@okbank"}

    declined = _pay(api_client, paymentMethod="upi", upiId="alice")
    assert declined.status_code == 400


def test_history_and_lookup_are_owner_scoped(api_client, other_client):
    txn = _pay(api_client, paymentMethod="upi", upiId="alice@okbank").json()["payment"]["transactionId"]
    _pay(other_client, paymentMethod="upi", upiId="bob@okbank")

    history = api_client.get("/api/payments/history/").json()
    assert [p["transactionId"] for p in history] == [txn]
    assert api_client.get(f"/api/payments/{txn}/").status_code == 200
    assert other_client.get(f"/api/payments/{txn}/").status_code == 404
