"""Tests for quiz funnel analytics and the admin-only endpoint."""

import datetime
from unittest.mock import patch

import pytest

from thinkandtalk.services import quiz_analytics
from thinkandtalk.services.quiz_service import QUIZ_QUESTION_KEYS

START = datetime.datetime(2026, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)


def at(seconds):
    return START + datetime.timedelta(seconds=seconds)


def session(id="s1", **columns):
    row = {
        "id": id,
        "session_started_at": START,
        "reached_results": False,
        "email": None,
        "completed_at": None,
        "sales_page_at": None,
        "checkout_button_1_at": None,
        "checkout_button_2_at": None,
    }
    for key in QUIZ_QUESTION_KEYS:
        row[f"{key}_at"] = None
    row.update(columns)
    return row


@pytest.fixture
def sessions():
    first, second = QUIZ_QUESTION_KEYS[0], QUIZ_QUESTION_KEYS[1]
    return [
        session(
            "s1",
            reached_results=True,
            email="a@b.co",
            sales_page_at=at(400),
            checkout_button_1_at=at(410),
            **{f"{first}_at": at(10), f"{second}_at": at(30)},
        ),
        session("s2", **{f"{first}_at": at(20), f"{second}_at": at(20 + 600)}),
        session("s3"),
        session("s4"),
    ]


class TestAggregates:
    def test_completion_rate(self, sessions):
        assert quiz_analytics.completion_rate(sessions) == {"completed": 1, "total": 4, "rate": 25.0}

    def test_completion_rate_without_sessions(self):
        assert quiz_analytics.completion_rate([]) == {"completed": 0, "total": 0, "rate": 0.0}

    def test_funnel_steps(self, sessions):
        steps = {s["step"]: s for s in quiz_analytics.funnel_steps(sessions)}

        assert steps["start"]["count"] == 4
        assert steps[QUIZ_QUESTION_KEYS[0]]["count"] == 2
        assert steps[QUIZ_QUESTION_KEYS[0]]["percentage"] == 50.0
        assert steps[QUIZ_QUESTION_KEYS[2]]["count"] == 0
        assert steps["results"]["count"] == 1
        assert steps["email"]["count"] == 1
        assert steps["sales_page"]["count"] == 1
        assert steps["checkout_button_1_at"]["count"] == 1
        assert steps["checkout_button_2_at"]["count"] == 0

    def test_funnel_order(self, sessions):
        order = [s["step"] for s in quiz_analytics.funnel_steps(sessions)]
        assert order[0] == "start"
        assert order[1:1 + len(QUIZ_QUESTION_KEYS)] == QUIZ_QUESTION_KEYS
        assert order[-5:] == ["results", "email", "sales_page", "checkout_button_1_at", "checkout_button_2_at"]

    def test_empty_funnel(self):
        assert quiz_analytics.funnel_steps([]) == []

    def test_time_per_question_skips_abandoned_gaps(self, sessions):
        times = {t["questionKey"]: t for t in quiz_analytics.time_per_question(sessions)}

        first, second = QUIZ_QUESTION_KEYS[0], QUIZ_QUESTION_KEYS[1]
        assert times[first] == {"questionKey": first, "avgTimeSeconds": 15.0, "totalResponses": 2}
        # s2 took 600s on the second question
        assert times[second] == {"questionKey": second, "avgTimeSeconds": 20.0, "totalResponses": 1}
        assert QUIZ_QUESTION_KEYS[2] not in times

    def test_recent_sessions(self, sessions):
        recent = quiz_analytics.recent_sessions(sessions)

        assert recent[0]["answeredCount"] == 2
        assert recent[0]["lastAnswerAt"] == at(30).isoformat()
        assert recent[0]["reachedResults"] is True
        assert recent[2]["lastAnswerAt"] is None

    def test_load_sessions_uses_limit(self, db_conn):
        quiz_analytics.load_sessions()

        query, params = db_conn.cursor.return_value.execute.call_args.args
        assert "session_started_at IS NOT NULL" in query
        assert params == (500,)


class TestAnalyticsRoute:
    def test_requires_login(self, client):
        assert client.get("/quiz/analytics").status_code == 401

    def test_non_admin_is_forbidden(self, client, logged_in):
        with patch("thinkandtalk.auth.has_role", return_value=False) as has_role:
            response = client.get("/quiz/analytics")

        assert response.status_code == 403
        assert response.json() == {"error": "Acesso restrito a administradores."}
        has_role.assert_called_once_with(logged_in.id, "admin")

    def test_admin_gets_report(self, client, logged_in, db_conn, sessions):
        db_conn.cursor.return_value.fetchall.return_value = sessions
        with patch("thinkandtalk.auth.has_role", return_value=True):
            response = client.get("/quiz/analytics")

        assert response.status_code == 200
        body = response.json()
        assert body["completion"] == {"completed": 1, "total": 4, "rate": 25.0}
        assert body["funnel"][0] == {"step": "start", "label": "Início do Quiz", "count": 4, "percentage": 100.0}
        assert len(body["timePerQuestion"]) == 2
        assert len(body["recentSessions"]) == 4
