# backend/thinkandtalk/services/role_service.py

from thinkandtalk.db import get_db

ADMIN_ROLE = "admin"


def has_role(user_id: str, role: str) -> bool:
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            """
            SELECT EXISTS (
                SELECT 1 FROM user_roles WHERE user_id = %s AND role = %s
            ) AS has_role
            """,
            (user_id, role),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    return bool(row and row["has_role"])
