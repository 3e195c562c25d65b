# backend/thinkandtalk/services/quiz_analytics.py
"""
Quiz funnel analytics over the most recent sessions.

Aggregates are computed in Python from the raw quiz_responses rows:
completion rate, the step-by-step abandonment funnel, and the average
time spent on each question (derived from the <key>_at timestamps).
"""

from typing import Any, Dict, List

from thinkandtalk.db import get_db
from thinkandtalk.services.quiz_service import QUIZ_QUESTION_KEYS

SESSION_LIMIT = 500
RECENT_SESSIONS = 50
# longer gaps are abandoned tabs, not answer time
MAX_ANSWER_SECONDS = 300

TAIL_STEPS = [
    ("results", "Página de Resultados", lambda r: bool(r.get("reached_results"))),
    ("email", "Email Capturado", lambda r: bool(r.get("email"))),
    ("sales_page", "Página de Vendas", lambda r: r.get("sales_page_at") is not None),
    ("checkout_button_1_at", "Clique Checkout (Botão 1)", lambda r: r.get("checkout_button_1_at") is not None),
    ("checkout_button_2_at", "Clique Checkout (Botão 2)", lambda r: r.get("checkout_button_2_at") is not None),
]


def load_sessions(limit: int = SESSION_LIMIT) -> List[Dict[str, Any]]:
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            """
            SELECT *
            FROM quiz_responses
            WHERE session_started_at IS NOT NULL
            ORDER BY session_started_at DESC
            LIMIT %s
            """,
            (limit,),
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return list(rows)


def _percentage(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total else 0.0


def _answer_times(row: Dict[str, Any]) -> List[tuple]:
    """(key, answered_at) for every answered question, oldest first."""
    answered = [
        (key, row.get(f"{key}_at"))
        for key in QUIZ_QUESTION_KEYS
        if row.get(f"{key}_at") is not None
    ]
    return sorted(answered, key=lambda item: item[1])


def completion_rate(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    total = len(rows)
    completed = sum(1 for r in rows if r.get("reached_results"))
    return {"completed": completed, "total": total, "rate": _percentage(completed, total)}


def funnel_steps(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    total = len(rows)
    if not total:
        return []

    steps = [{"step": "start", "label": "Início do Quiz", "count": total, "percentage": 100.0}]

    for index, key in enumerate(QUIZ_QUESTION_KEYS):
        count = sum(1 for r in rows if r.get(f"{key}_at") is not None)
        steps.append({
            "step": key,
            "label": f"Q{index + 1}: {key}",
            "count": count,
            "percentage": _percentage(count, total),
        })

    for step, label, reached in TAIL_STEPS:
        count = sum(1 for r in rows if reached(r))
        steps.append({
            "step": step,
            "label": label,
            "count": count,
            "percentage": _percentage(count, total),
        })

    return steps


def time_per_question(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    totals: Dict[str, List[float]] = {}

    for row in rows:
        previous = row.get("session_started_at")
        if previous is None:
            continue

        for key, answered_at in _answer_times(row):
            seconds = (answered_at - previous).total_seconds()
            previous = answered_at
            if 0 < seconds < MAX_ANSWER_SECONDS:
                totals.setdefault(key, []).append(seconds)

    return [
        {
            "questionKey": key,
            "avgTimeSeconds": round(sum(totals[key]) / len(totals[key]), 1),
            "totalResponses": len(totals[key]),
        }
        for key in QUIZ_QUESTION_KEYS
        if key in totals
    ]


def recent_sessions(rows: List[Dict[str, Any]], limit: int = RECENT_SESSIONS) -> List[Dict[str, Any]]:
    sessions = []
    for row in rows[:limit]:
        answered = _answer_times(row)
        sessions.append({
            "id": str(row["id"]),
            "sessionStartedAt": row["session_started_at"].isoformat(),
            "reachedResults": bool(row.get("reached_results")),
            "email": row.get("email"),
            "completedAt": row["completed_at"].isoformat() if row.get("completed_at") else None,
            "answeredCount": len(answered),
            "lastAnswerAt": answered[-1][1].isoformat() if answered else None,
        })
    return sessions


def build_report(limit: int = SESSION_LIMIT) -> Dict[str, Any]:
    rows = load_sessions(limit)
    return {
        "completion": completion_rate(rows),
        "funnel": funnel_steps(rows),
        "timePerQuestion": time_per_question(rows),
        "recentSessions": recent_sessions(rows),
    }
