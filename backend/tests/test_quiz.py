"""Tests for quiz answer validation and the quiz endpoints."""

from unittest.mock import patch

import pytest
from psycopg2.extras import Json

from thinkandtalk.services import quiz_service
from thinkandtalk.services.quiz_service import QuizResponseNotFound

ROUTES = "thinkandtalk.routes.quiz_routes"
RESPONSE_ID = "33333333-3333-3333-3333-333333333333"


class TestValidateAnswer:
    def test_single_choice(self):
        assert quiz_service.validate_answer("niche", "education") == "education"

    def test_unknown_question(self):
        with pytest.raises(ValueError, match="Unknown question"):
            quiz_service.validate_answer("favorite_color", "blue")

    def test_unknown_option(self):
        with pytest.raises(ValueError, match="Invalid option"):
            quiz_service.validate_answer("energy_level", "extreme")

    def test_multi_select_dedupes_in_order(self):
        value = quiz_service.validate_answer("platforms", ["tiktok", "instagram", "tiktok"])
        assert value == ["tiktok", "instagram"]

    def test_multi_select_requires_list(self):
        with pytest.raises(ValueError, match="expects a list"):
            quiz_service.validate_answer("platforms", "tiktok")

    def test_multi_select_rejects_bad_option(self):
        with pytest.raises(ValueError, match="Invalid option"):
            quiz_service.validate_answer("platforms", ["tiktok", "myspace"])


class TestQuizService:
    def test_start_response(self, db_conn):
        db_conn.cursor.return_value.fetchone.return_value = {"id": RESPONSE_ID}
        assert quiz_service.start_response() == RESPONSE_ID
        db_conn.commit.assert_called_once()

    def test_multi_select_is_stored_as_json(self, db_conn):
        quiz_service.save_answer(RESPONSE_ID, "platforms", ["youtube_long"])

        query, params = db_conn.cursor.return_value.execute.call_args.args
        assert "Identifier('platforms_at')" in repr(query)
        assert isinstance(params[0], Json)
        assert params[1] == RESPONSE_ID

    def test_missing_row_raises(self, db_conn):
        db_conn.cursor.return_value.rowcount = 0
        with pytest.raises(QuizResponseNotFound):
            quiz_service.reveal_coupon(RESPONSE_ID)

    def test_submit_email_links_user(self, db_conn):
        quiz_service.submit_email(RESPONSE_ID, "a@b.co", "user-1")
        params = db_conn.cursor.return_value.execute.call_args.args[1]
        assert params == ("a@b.co", "user-1", RESPONSE_ID)


class TestQuizRoutes:
    def test_start(self, client):
        with patch(f"{ROUTES}.quiz_service.start_response", return_value=RESPONSE_ID):
            response = client.post("/quiz/responses")

        assert response.status_code == 201
        assert response.json() == {"id": RESPONSE_ID}

    def test_save_answer(self, client):
        with patch(f"{ROUTES}.quiz_service.save_answer") as save:
            response = client.patch(
                f"/quiz/responses/{RESPONSE_ID}",
                json={"questionKey": "niche", "value": "health"},
            )

        assert response.json() == {"saved": True}
        save.assert_called_once_with(RESPONSE_ID, "niche", "health")

    def test_save_invalid_answer(self, client, db_conn):
        response = client.patch(
            f"/quiz/responses/{RESPONSE_ID}",
            json={"questionKey": "niche", "value": "astrology"},
        )
        assert response.status_code == 400
        db_conn.cursor.assert_not_called()

    def test_save_answer_unknown_response(self, client):
        with patch(f"{ROUTES}.quiz_service.save_answer", side_effect=QuizResponseNotFound(RESPONSE_ID)):
            response = client.patch(
                f"/quiz/responses/{RESPONSE_ID}",
                json={"questionKey": "niche", "value": "health"},
            )

        assert response.status_code == 404
        assert response.json() == {"error": "Quiz response not found"}

    def test_reveal_coupon(self, client):
        with patch(f"{ROUTES}.quiz_service.reveal_coupon"):
            response = client.post(f"/quiz/responses/{RESPONSE_ID}/coupon")

        assert response.json() == {"couponRevealed": True}

    def test_submit_email_as_guest(self, client):
        with patch(f"{ROUTES}.quiz_service.submit_email") as submit:
            response = client.post(
                f"/quiz/responses/{RESPONSE_ID}/email",
                json={"email": " Ana@Example.com "},
            )

        assert response.json() == {"completed": True}
        submit.assert_called_once_with(RESPONSE_ID, "ana@example.com", None)

    def test_submit_email_logged_in(self, client, logged_in):
        with patch(f"{ROUTES}.quiz_service.submit_email") as submit:
            client.post(f"/quiz/responses/{RESPONSE_ID}/email", json={"email": "ana@example.com"})

        submit.assert_called_once_with(RESPONSE_ID, "ana@example.com", logged_in.id)

    def test_submit_bad_email(self, client):
        response = client.post(f"/quiz/responses/{RESPONSE_ID}/email", json={"email": "nope"})
        assert response.status_code == 400
        assert response.json() == {"error": "Email invalido."}

    def test_answer_without_question_key(self, client):
        response = client.patch(f"/quiz/responses/{RESPONSE_ID}", json={"value": "x"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid payload"}

    def test_malformed_response_id(self, client):
        response = client.patch(
            "/quiz/responses/not-a-uuid",
            json={"questionKey": "niche", "value": "health"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid payload"}

    def test_funnel_event(self, client):
        with patch(f"{ROUTES}.quiz_service.record_funnel_event") as record:
            response = client.post(
                f"/quiz/responses/{RESPONSE_ID}/events", json={"event": "sales_page"}
            )

        assert response.json() == {"recorded": True}
        record.assert_called_once_with(RESPONSE_ID, "sales_page")

    def test_unknown_funnel_event(self, client, db_conn):
        response = client.post(f"/quiz/responses/{RESPONSE_ID}/events", json={"event": "share"})
        assert response.status_code == 400
        db_conn.cursor.assert_not_called()


class TestFunnelEvents:
    def test_checkout_click_keeps_first_timestamp(self, db_conn):
        quiz_service.record_funnel_event(RESPONSE_ID, "checkout_button_1")

        query, params = db_conn.cursor.return_value.execute.call_args.args
        assert "COALESCE(checkout_button_1_at, CURRENT_TIMESTAMP)" in repr(query)
        assert params == (RESPONSE_ID,)

    def test_results_flag(self, db_conn):
        quiz_service.record_funnel_event(RESPONSE_ID, "results")
        assert "reached_results = TRUE" in repr(db_conn.cursor.return_value.execute.call_args.args[0])
