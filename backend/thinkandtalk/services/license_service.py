# backend/thinkandtalk/services/license_service.py

import logging
from typing import Optional

from thinkandtalk.db import get_db

logger = logging.getLogger("thinkandtalk-backend.license")


# -------------------------------------------------
# LICENSE FLAG (creator_profiles)
# -------------------------------------------------
def activate_license(user_id: str) -> None:
    """Sets has_license=TRUE, creating the profile row if needed."""
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO creator_profiles (user_id, has_license, updated_at)
            VALUES (%s, TRUE, CURRENT_TIMESTAMP)
            ON CONFLICT (user_id)
            DO UPDATE SET
                has_license = TRUE,
                updated_at = CURRENT_TIMESTAMP
            """,
            (user_id,),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    logger.info("✅ License activated for user %s", user_id)


def has_license(user_id: str) -> bool:
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            "SELECT has_license FROM creator_profiles WHERE user_id = %s",
            (user_id,),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    return bool(row and row["has_license"] is True)


# -------------------------------------------------
# QUIZ ↔ AUTH USER LINKING
# -------------------------------------------------
def find_user_id_by_quiz_email(email: str) -> Optional[str]:
    """Most recent quiz response for this email that is already linked to a user."""
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            """
            SELECT user_id
            FROM quiz_responses
            WHERE lower(email) = lower(%s)
              AND user_id IS NOT NULL
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (email,),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    if not row:
        return None
    return str(row["user_id"])


def link_quiz_responses(email: str, user_id: str) -> int:
    """Attaches orphan quiz responses for this email to the user. Returns rows updated."""
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE quiz_responses
            SET user_id = %s
            WHERE lower(email) = lower(%s)
              AND user_id IS NULL
            """,
            (user_id, email),
        )
        updated = cur.rowcount
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    if updated:
        logger.info("🔗 Linked %s quiz response(s) to user %s", updated, user_id)
    return updated
