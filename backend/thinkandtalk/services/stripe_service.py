# backend/thinkandtalk/services/stripe_service.py

import logging
from typing import Any, Dict, Optional

import stripe

from thinkandtalk.config import get_required_env

logger = logging.getLogger("thinkandtalk-backend.stripe-service")

MAX_SESSION_ID_LENGTH = 200


class CheckoutError(Exception):
    """Checkout cannot be created (configuration or Stripe failure)."""


def field(obj: Any, key: str, default: Any = None) -> Any:
    """Reads a key from a StripeObject or dict, None-safe."""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError, IndexError):
        return default
    return default if value is None else value


def configure() -> None:
    try:
        stripe.api_key = get_required_env("STRIPE_SECRET_KEY")
    except RuntimeError as e:
        raise CheckoutError("Stripe não configurado.") from e


# -------------------------------------------------
# SESSION ID VALIDATION
# -------------------------------------------------
def clean_session_id(value: Any, require_prefix: bool = True) -> str:
    """
    Trims and bounds a Checkout Session id from the request body.
    Raises ValueError with the user-facing message.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Session ID invalido.")

    session_id = value.strip()[:MAX_SESSION_ID_LENGTH]

    if require_prefix and not session_id.startswith("cs_"):
        raise ValueError("Session ID format invalido.")

    return session_id


# -------------------------------------------------
# READS
# -------------------------------------------------
def retrieve_checkout_session(session_id: str):
    configure()
    logger.info("Retrieving checkout session: %s", session_id)
    return stripe.checkout.Session.retrieve(session_id)


def retrieve_subscription(subscription_id: str):
    configure()
    return stripe.Subscription.retrieve(subscription_id)


def subscription_period_end(subscription: Any) -> Optional[int]:
    """
    Unix timestamp of the current period end. Newer API versions moved it
    from the subscription onto its items.
    """
    period_end = field(subscription, "current_period_end")
    if period_end:
        return period_end

    items = field(field(subscription, "items"), "data", [])
    if items:
        return field(items[0], "current_period_end")
    return None


def find_customer_id_by_email(email: str) -> Optional[str]:
    configure()
    customers = stripe.Customer.list(email=email, limit=1)
    data = field(customers, "data", [])
    if not data:
        return None
    return field(data[0], "id")


# -------------------------------------------------
# CHECKOUT
# -------------------------------------------------
def create_subscription_checkout(
    price_id: str,
    origin: str,
    customer_id: Optional[str] = None,
    customer_email: Optional[str] = None,
    metadata: Optional[Dict[str, str]] = None,
) -> str:
    """Creates a subscription Checkout Session and returns its hosted URL."""
    configure()

    params: Dict[str, Any] = {
        "line_items": [{"price": price_id, "quantity": 1}],
        "mode": "subscription",
        "success_url": f"{origin}/premium/success?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{origin}/premium",
        "allow_promotion_codes": True,
        "metadata": metadata or {},
    }

    if customer_id:
        params["customer"] = customer_id
    elif customer_email:
        params["customer_email"] = customer_email

    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        logger.error("❌ Stripe checkout creation failed: %s", e)
        raise CheckoutError("Erro ao criar sessão de checkout.") from e

    logger.info("Checkout session created: %s", field(session, "id"))
    return field(session, "url")
