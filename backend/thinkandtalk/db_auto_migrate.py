import logging

from thinkandtalk.db import get_db
from thinkandtalk.services.quiz_service import MULTI_SELECT_KEYS, QUIZ_QUESTION_KEYS

logger = logging.getLogger("thinkandtalk-backend.migrations")

MIGRATIONS = [
    """
    CREATE TABLE IF NOT EXISTS creator_profiles (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID NOT NULL UNIQUE,
        has_license BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS lastlink_events (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        event_id TEXT NOT NULL UNIQUE,
        event_type TEXT NOT NULL,
        buyer_email TEXT NOT NULL,
        payment_id TEXT,
        is_test BOOLEAN DEFAULT FALSE,
        payload JSONB,
        processed BOOLEAN DEFAULT FALSE,
        error_message TEXT,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS quiz_responses (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        email TEXT,
        user_id UUID,
        session_started_at TIMESTAMP WITH TIME ZONE,
        completed_at TIMESTAMP WITH TIME ZONE,
        coupon_revealed BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id UUID PRIMARY KEY,
        email TEXT,
        is_premium BOOLEAN DEFAULT FALSE,
        subscription_tier TEXT,
        premium_type TEXT,
        plan_confirmed BOOLEAN DEFAULT FALSE,
        purchase_date TIMESTAMP WITH TIME ZONE,
        premium_since TIMESTAMP WITH TIME ZONE,
        stripe_customer_id TEXT,
        stripe_session_id TEXT,
        stripe_subscription_id TEXT,
        subscription_status TEXT,
        current_period_end TIMESTAMP WITH TIME ZONE,
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS teleprompter_scripts (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID NOT NULL,
        news_ids_json JSONB NOT NULL DEFAULT '[]'::jsonb,
        parameters_json JSONB NOT NULL DEFAULT '{}'::jsonb,
        script_text TEXT NOT NULL,
        raw_ai_response TEXT,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_lastlink_events_buyer_email
        ON lastlink_events (lower(buyer_email));
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_teleprompter_scripts_user_created
        ON teleprompter_scripts (user_id, created_at DESC);
    """,
    """
    ALTER TABLE quiz_responses
        ADD COLUMN IF NOT EXISTS reached_results BOOLEAN DEFAULT FALSE,
        ADD COLUMN IF NOT EXISTS sales_page_at TIMESTAMP WITH TIME ZONE,
        ADD COLUMN IF NOT EXISTS checkout_button_1_at TIMESTAMP WITH TIME ZONE,
        ADD COLUMN IF NOT EXISTS checkout_button_2_at TIMESTAMP WITH TIME ZONE;
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_quiz_responses_started
        ON quiz_responses (session_started_at DESC);
    """,
    """
    CREATE TABLE IF NOT EXISTS user_roles (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID NOT NULL,
        role TEXT NOT NULL,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        UNIQUE (user_id, role)
    );
    """,
]


def quiz_answer_migrations():
    """
    One column per quiz question plus its <key>_at answer timestamp.
    Multi-select answers are JSON arrays.
    """
    statements = []
    for key in QUIZ_QUESTION_KEYS:
        column_type = "JSONB" if key in MULTI_SELECT_KEYS else "TEXT"
        statements.append(
            f"ALTER TABLE quiz_responses ADD COLUMN IF NOT EXISTS {key} {column_type}, "
            f"ADD COLUMN IF NOT EXISTS {key}_at TIMESTAMP WITH TIME ZONE;"
        )
    return statements


def run_migrations():
    conn = None
    try:
        conn = get_db()
        cur = conn.cursor()
        for sql in MIGRATIONS + quiz_answer_migrations():
            cur.execute(sql)
        conn.commit()
        cur.close()
    except Exception as e:
        logger.error(f"DB Migration Error: {e}")
        if conn:
            conn.rollback()
    finally:
        if conn:
            conn.close()
