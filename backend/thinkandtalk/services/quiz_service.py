# backend/thinkandtalk/services/quiz_service.py

import logging
from typing import Any, Dict, Optional

from psycopg2 import sql
from psycopg2.extras import Json

from thinkandtalk.db import get_db

logger = logging.getLogger("thinkandtalk-backend.quiz")

# ---------------------------------------------
# QUIZ QUESTIONS → ACCEPTED OPTION VALUES
# (each key is a quiz_responses column)
# ---------------------------------------------
AGE_BANDS = {"under_18", "18_24", "25_34", "35_44", "45_plus"}

QUIZ_QUESTIONS: Dict[str, set] = {
    "age_range": AGE_BANDS,
    "main_goal": {"grow_audience", "engage_community", "sell_products", "share_knowledge"},
    "publish_frequency": {"daily", "3_5_weekly", "1_2_weekly", "rarely"},
    "comfort_recording": {"very_comfortable", "ok_insecure", "freeze_lose_words", "avoid"},
    "biggest_challenge": {"lack_ideas", "poor_editing", "no_engagement", "shyness"},
    "planning_style": {"full_scripts", "loose_topics", "no_script", "want_to_learn"},
    "editing_time": {"less_30min", "30min_1h", "1_2h", "more_2h"},
    "result_goal": {"more_followers", "more_views", "more_engagement", "more_messages_sales"},
    "niche": {"education", "business", "lifestyle", "health", "entertainment", "other"},
    "creator_level": {"beginner", "basic", "intermediate", "advanced"},
    "audience_type": {"b2c", "entrepreneurs", "creators", "b2b", "general"},
    "audience_age": AGE_BANDS,
    "audience_gender": {"mostly_female", "mostly_male", "balanced", "unknown"},
    "video_format": {"educational", "storytelling", "opinion", "behind_scenes", "sales", "mixed"},
    "video_duration": {"1min", "2min", "3min", "5min", "10min_plus"},
    "platforms": {"instagram", "tiktok", "youtube_shorts", "youtube_long", "lives", "other"},
    "speaking_tone": {"professional", "friendly", "motivational", "fun", "direct"},
    "energy_level": {"low", "medium", "high"},
    "content_goal": {"inform", "educate", "entertain", "inspire", "sell", "engage"},
}

QUIZ_QUESTION_KEYS = list(QUIZ_QUESTIONS)
MULTI_SELECT_KEYS = {"platforms"}

# funnel steps after the last question; timestamps keep the first visit
FUNNEL_EVENTS = {
    "results": "reached_results = TRUE",
    "sales_page": "sales_page_at = COALESCE(sales_page_at, CURRENT_TIMESTAMP)",
    "checkout_button_1": "checkout_button_1_at = COALESCE(checkout_button_1_at, CURRENT_TIMESTAMP)",
    "checkout_button_2": "checkout_button_2_at = COALESCE(checkout_button_2_at, CURRENT_TIMESTAMP)",
}


class QuizResponseNotFound(Exception):
    pass


def validate_answer(question_key: str, value: Any) -> Any:
    """Returns the value to store; raises ValueError for unknown keys/options."""
    options = QUIZ_QUESTIONS.get(question_key)
    if options is None:
        raise ValueError(f"Unknown question: {question_key}")

    if question_key in MULTI_SELECT_KEYS:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValueError(f"{question_key} expects a list of options")
        invalid = [v for v in value if v not in options]
        if invalid:
            raise ValueError(f"Invalid option(s) for {question_key}: {invalid}")
        # keep order, drop repeats
        return list(dict.fromkeys(value))

    if not isinstance(value, str) or value not in options:
        raise ValueError(f"Invalid option for {question_key}: {value!r}")
    return value


# -------------------------------------------------
# WRITES
# -------------------------------------------------
def _update_response(response_id: str, assignments: sql.Composable, params: tuple) -> None:
    query = sql.SQL("UPDATE quiz_responses SET {assignments} WHERE id = %s").format(
        assignments=assignments
    )

    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(query, params + (response_id,))
        updated = cur.rowcount
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    if not updated:
        raise QuizResponseNotFound(response_id)


def start_response() -> str:
    """Creates an empty quiz response and returns its id."""
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO quiz_responses (session_started_at)
            VALUES (CURRENT_TIMESTAMP)
            RETURNING id
            """
        )
        row = cur.fetchone()
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    return str(row["id"])


def save_answer(response_id: str, question_key: str, value: Any) -> None:
    value = validate_answer(question_key, value)
    stored = Json(value) if question_key in MULTI_SELECT_KEYS else value

    _update_response(
        response_id,
        sql.SQL("{col} = %s, {stamp} = CURRENT_TIMESTAMP").format(
            col=sql.Identifier(question_key),
            stamp=sql.Identifier(f"{question_key}_at"),
        ),
        (stored,),
    )


def reveal_coupon(response_id: str) -> None:
    _update_response(response_id, sql.SQL("coupon_revealed = TRUE"), ())


def submit_email(response_id: str, email: str, user_id: Optional[str] = None) -> None:
    if user_id:
        _update_response(
            response_id,
            sql.SQL("email = %s, user_id = %s, completed_at = CURRENT_TIMESTAMP"),
            (email, user_id),
        )
    else:
        _update_response(
            response_id,
            sql.SQL("email = %s, completed_at = CURRENT_TIMESTAMP"),
            (email,),
        )
    logger.info("📝 Quiz %s completed", response_id)


def record_funnel_event(response_id: str, event: str) -> None:
    assignment = FUNNEL_EVENTS.get(event)
    if assignment is None:
        raise ValueError(f"Unknown funnel event: {event}")
    _update_response(response_id, sql.SQL(assignment), ())
