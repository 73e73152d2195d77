"""
Plan payments by card or UPI.

Authorization is simulated: a 16-digit card number or a UPI id containing
``@`` passes. Only the last four digits and the brand of a card are ever
stored.
"""
import logging
import random
import re
import time
from decimal import ROUND_HALF_UP, Decimal

from .exceptions import ValidationError
from .models import Payment

logger = logging.getLogger(__name__)

TAX_RATE = Decimal("0.18")  # GST

CARD_BRANDS = (
    ("Visa", re.compile(r"^4")),
    ("Mastercard", re.compile(r"^5[1-5]")),
    ("American Express", re.compile(r"^3[47]")),
    ("Discover", re.compile(r"^6(?:011|5)")),
    ("JCB", re.compile(r"^35")),
    ("RuPay", re.compile(r"^(?:6304|6706|6709|6771)")),
)


def generate_transaction_id() -> str:
    return f"TXN{int(time.time() * 1000)}{random.randint(0, 999999)}"


def calculate_tax(amount) -> Decimal:
    return (Decimal(amount) * TAX_RATE).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _digits(card_number: str) -> str:
    return re.sub(r"\s", "", card_number or "")


def detect_card_brand(card_number: str) -> str:
    number = _digits(card_number)
    for brand, pattern in CARD_BRANDS:
        if pattern.match(number):
            return brand
    return "Unknown"


def mask_card(card_number: str) -> dict:
    return {"card_last_four": _digits(card_number)[-4:], "card_brand": detect_card_brand(card_number)}


def authorize_card(card_number: str) -> bool:
    return len(_digits(card_number)) == 16


def authorize_upi(upi_id: str) -> bool:
    return "@" in (upi_id or "")


def process_payment(owner, *, plan_name: str, amount, payment_method: str, personal_details: dict,
                    card_number: str = "", card_name: str = "", upi_id: str = "") -> Payment:
    """
    Authorize and record a payment. Declined payments are recorded too, with
    ``payment_status=failed``; the caller decides how to report them.
    """
    if payment_method == Payment.Method.CARD:
        if not card_number or not card_name:
            raise ValidationError("Invalid card details")
        details = mask_card(card_number)
        approved = authorize_card(card_number)
        declined_message = "Card payment declined"
    elif payment_method == Payment.Method.UPI:
        if not upi_id:
            raise ValidationError("Invalid UPI ID")
        details = {"upi_id": upi_id}
        approved = authorize_upi(upi_id)
        declined_message = "UPI payment failed"
    else:
        raise ValidationError(f"Unsupported payment method: {payment_method}")

    amount = Decimal(amount)
    tax = calculate_tax(amount)
    payment = Payment.objects.create(
        owner=owner,
        plan_name=plan_name,
        amount=amount,
        tax=tax,
        total_amount=amount + tax,
        payment_method=payment_method,
        payment_status=Payment.Status.COMPLETED if approved else Payment.Status.FAILED,
        transaction_id=generate_transaction_id(),
        personal_details=personal_details,
        payment_details=details,
        error_message="" if approved else declined_message,
    )
    if approved:
        logger.info("Payment %s completed for plan %s", payment.transaction_id, plan_name)
    else:
        logger.warning("Payment %s declined: %s", payment.transaction_id, declined_message)
    return payment
