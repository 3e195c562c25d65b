# backend/thinkandtalk/services/lastlink_service.py

import logging
from typing import Any, Dict, Optional

from psycopg2.extras import Json

from thinkandtalk.config import PURCHASE_CONFIRMED_EVENT
from thinkandtalk.db import get_db
from thinkandtalk.services import license_service, supabase_auth

logger = logging.getLogger("thinkandtalk-backend.lastlink-service")


class BuyerNotFoundError(Exception):
    """No auth user could be matched to the buyer email."""


# -------------------------------------------------
# EVENT LOG (lastlink_events)
# -------------------------------------------------
def get_event(event_id: str) -> Optional[Dict[str, Any]]:
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            "SELECT id, processed FROM lastlink_events WHERE event_id = %s",
            (event_id,),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    return dict(row) if row else None


def record_event(
    event_id: str,
    event_type: str,
    buyer_email: str,
    payload: Dict[str, Any],
    payment_id: Optional[str] = None,
    is_test: bool = False,
    processed: bool = False,
    error_message: Optional[str] = None,
) -> None:
    """Upserts one webhook delivery; event_id is the dedupe key."""
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO lastlink_events (
                event_id, event_type, buyer_email, payment_id,
                is_test, payload, processed, error_message
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (event_id)
            DO UPDATE SET
                event_type = EXCLUDED.event_type,
                buyer_email = EXCLUDED.buyer_email,
                payment_id = EXCLUDED.payment_id,
                is_test = EXCLUDED.is_test,
                payload = EXCLUDED.payload,
                processed = EXCLUDED.processed,
                error_message = EXCLUDED.error_message
            """,
            (
                event_id,
                event_type,
                buyer_email,
                payment_id,
                is_test,
                Json(payload),
                processed,
                error_message,
            ),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def find_confirmed_purchase(email: str) -> Optional[Dict[str, Any]]:
    """Latest confirmed purchase for this buyer email, if any."""
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            """
            SELECT event_id, event_type
            FROM lastlink_events
            WHERE lower(buyer_email) = lower(%s)
              AND event_type = %s
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (email, PURCHASE_CONFIRMED_EVENT),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    return dict(row) if row else None


# -------------------------------------------------
# BUYER → USER
# -------------------------------------------------
def resolve_buyer_user_id(email: str) -> Optional[str]:
    """
    Quiz responses are checked first (the usual path: quiz, signup, checkout);
    the auth admin user list is the fallback.
    """
    user_id = license_service.find_user_id_by_quiz_email(email)
    if user_id:
        logger.info("Found user via quiz_responses: %s", user_id)
        return user_id

    try:
        user = supabase_auth.find_user_by_email(email)
    except Exception as e:
        logger.error("Error listing users: %s", e)
        return None

    if user:
        logger.info("Found user via admin API: %s", user.id)
        return user.id

    return None


def activate_buyer_license(email: str) -> str:
    """Grants the license to the buyer's account. Returns the user id."""
    user_id = resolve_buyer_user_id(email)
    if not user_id:
        raise BuyerNotFoundError(f"User not found for email: {email}")

    license_service.activate_license(user_id)
    return user_id
