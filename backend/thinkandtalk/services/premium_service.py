# backend/thinkandtalk/services/premium_service.py
"""
Stripe-derived premium state, stored in the `users` table.
"""

import logging
from typing import Any, Dict, Optional

from psycopg2 import sql

from thinkandtalk.db import get_db
from thinkandtalk.services.stripe_service import (
    field,
    retrieve_subscription,
    subscription_period_end,
)
from thinkandtalk.utils.helpers import from_unix, utc_now

logger = logging.getLogger("thinkandtalk-backend.premium")

PLAN_STANDARD = "STANDARD"
PLAN_INFLUENCER = "INFLUENCER"

USER_COLUMNS = {
    "email",
    "is_premium",
    "subscription_tier",
    "premium_type",
    "plan_confirmed",
    "purchase_date",
    "premium_since",
    "stripe_customer_id",
    "stripe_session_id",
    "stripe_subscription_id",
    "subscription_status",
    "current_period_end",
    "updated_at",
}


# -------------------------------------------------
# USERS TABLE
# -------------------------------------------------
def upsert_user(user_id: str, values: Dict[str, Any]) -> None:
    """INSERT ... ON CONFLICT (user_id) DO UPDATE for the given columns only."""
    unknown = set(values) - USER_COLUMNS
    if unknown:
        raise ValueError(f"Unknown users columns: {sorted(unknown)}")

    columns = ["user_id"] + sorted(values)
    params = [user_id] + [values[c] for c in columns[1:]]

    query = sql.SQL(
        "INSERT INTO users ({cols}) VALUES ({vals}) "
        "ON CONFLICT (user_id) DO UPDATE SET {updates}"
    ).format(
        cols=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
        vals=sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        updates=sql.SQL(", ").join(
            sql.SQL("{col} = EXCLUDED.{col}").format(col=sql.Identifier(c))
            for c in columns[1:]
        ),
    )

    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(query, params)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def get_stripe_customer_id(user_id: str) -> Optional[str]:
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            "SELECT stripe_customer_id FROM users WHERE user_id = %s",
            (user_id,),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    if not row:
        return None
    return row["stripe_customer_id"]


# -------------------------------------------------
# PLAN RESOLUTION
# -------------------------------------------------
def normalize_plan(value: Any) -> str:
    return PLAN_INFLUENCER if value == PLAN_INFLUENCER else PLAN_STANDARD


def build_premium_update(session: Any, email: Optional[str], session_id: str) -> Dict[str, Any]:
    """
    Column values for a paid Checkout Session. INFLUENCER plans are
    subscriptions, so their status and period end come from Stripe.
    """
    plan = normalize_plan(field(field(session, "metadata"), "planType"))
    subscription_id = field(session, "subscription")
    if not isinstance(subscription_id, str):
        # expanded subscription object
        subscription_id = field(subscription_id, "id")

    now = utc_now()
    values: Dict[str, Any] = {
        "email": email,
        "is_premium": True,
        "subscription_tier": plan,
        "premium_type": "influencer" if plan == PLAN_INFLUENCER else "standard",
        "plan_confirmed": True,
        "purchase_date": now,
        "stripe_customer_id": field(session, "customer"),
        "stripe_session_id": session_id,
        "stripe_subscription_id": subscription_id if plan == PLAN_INFLUENCER else None,
        "subscription_status": "active",
        "current_period_end": None,
        "updated_at": now,
    }

    if plan == PLAN_INFLUENCER and subscription_id:
        subscription = retrieve_subscription(subscription_id)
        values["subscription_status"] = field(subscription, "status", "active")
        values["current_period_end"] = from_unix(subscription_period_end(subscription))

    return values


def activate_from_checkout(user_id: str, email: Optional[str], session: Any, session_id: str) -> str:
    """Marks the user premium from a paid session. Returns the plan."""
    values = build_premium_update(session, email, session_id)
    upsert_user(user_id, values)
    logger.info("✅ User %s upgraded to %s", user_id, values["subscription_tier"])
    return values["subscription_tier"]


def activate_pro_subscription(user_id: str, email: Optional[str], session: Any) -> None:
    """Premium state for the single-price 'pro' subscription checkout."""
    subscription_id = field(session, "subscription")
    if not isinstance(subscription_id, str):
        subscription_id = field(subscription_id, "id")

    upsert_user(
        user_id,
        {
            "email": email,
            "stripe_customer_id": field(session, "customer"),
            "stripe_subscription_id": subscription_id,
            "is_premium": True,
            "subscription_status": "active",
            "subscription_tier": "pro",
            "premium_since": utc_now(),
            "updated_at": utc_now(),
        },
    )
    logger.info("✅ Subscription verified for user %s", user_id)
