"""Tests for the Lastlink webhook, verify, license and auto-login endpoints."""

from unittest.mock import patch

from thinkandtalk.services.lastlink_service import BuyerNotFoundError
from thinkandtalk.services.supabase_auth import AuthUser, UserCreationError

ROUTES = "thinkandtalk.routes.lastlink_routes"


def purchase_payload(**overrides):
    payload = {
        "Id": "evt_001",
        "IsTest": False,
        "Event": "Purchase_Order_Confirmed",
        "CreatedAt": "2026-01-10T12:00:00Z",
        "Data": {
            "Buyer": {"Email": "  Buyer@Example.com ", "Name": "Ana"},
            "Purchase": {"PaymentId": "pay_123"},
        },
    }
    payload.update(overrides)
    return payload


def post_webhook(client, payload, token="lastlink-secret"):
    return client.post(
        "/lastlink/webhook",
        json=payload,
        headers={"x-webhook-token": token} if token else {},
    )


class TestWebhookAuth:
    def test_missing_token_is_rejected(self, client):
        response = post_webhook(client, purchase_payload(), token=None)
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_wrong_token_is_rejected(self, client):
        response = post_webhook(client, purchase_payload(), token="nope")
        assert response.status_code == 401

    def test_bearer_token_is_accepted(self, client):
        with patch(f"{ROUTES}.lastlink_service") as service:
            service.get_event.return_value = None
            service.activate_buyer_license.return_value = "user-1"
            response = client.post(
                "/lastlink/webhook",
                json=purchase_payload(),
                headers={"Authorization": "Bearer lastlink-secret"},
            )
        assert response.status_code == 200

    def test_unset_expected_token_rejects_everything(self, client, monkeypatch):
        monkeypatch.delenv("LASTLINK_WEBHOOK_TOKEN")
        response = post_webhook(client, purchase_payload())
        assert response.status_code == 401


class TestWebhookProcessing:
    def test_invalid_json(self, client):
        response = client.post(
            "/lastlink/webhook",
            content=b"{not json",
            headers={"x-webhook-token": "lastlink-secret", "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON"}

    def test_other_events_are_ignored(self, client):
        with patch(f"{ROUTES}.lastlink_service") as service:
            response = post_webhook(client, purchase_payload(Event="Purchase_Request_Canceled"))

        assert response.status_code == 200
        assert response.json() == {
            "message": "Event type ignored",
            "eventType": "Purchase_Request_Canceled",
        }
        service.record_event.assert_not_called()

    def test_missing_buyer_email_is_logged_as_unknown(self, client):
        payload = purchase_payload(Data={"Buyer": {}, "Purchase": {"PaymentId": "pay_1"}})
        with patch(f"{ROUTES}.lastlink_service") as service:
            response = post_webhook(client, payload)

        assert response.status_code == 400
        assert response.json() == {"error": "No buyer email"}
        kwargs = service.record_event.call_args.kwargs
        assert kwargs["buyer_email"] == "UNKNOWN"
        assert kwargs["processed"] is False
        assert kwargs["error_message"] == "No buyer email in payload"

    def test_already_processed_event_short_circuits(self, client):
        with patch(f"{ROUTES}.lastlink_service") as service:
            service.get_event.return_value = {"id": "row-1", "processed": True}
            response = post_webhook(client, purchase_payload())

        assert response.status_code == 200
        assert response.json() == {"message": "Event already processed"}
        service.activate_buyer_license.assert_not_called()

    def test_confirmed_purchase_activates_license(self, client):
        with patch(f"{ROUTES}.lastlink_service") as service:
            service.get_event.return_value = {"id": "row-1", "processed": False}
            service.activate_buyer_license.return_value = "user-42"
            response = post_webhook(client, purchase_payload())

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "License activated",
            "userId": "user-42",
        }
        service.activate_buyer_license.assert_called_once_with("buyer@example.com")
        kwargs = service.record_event.call_args.kwargs
        assert kwargs["event_id"] == "evt_001"
        assert kwargs["payment_id"] == "pay_123"
        assert kwargs["processed"] is True
        assert kwargs["error_message"] is None
        assert kwargs["payload"]["Id"] == "evt_001"

    def test_unknown_buyer_is_recorded_unprocessed(self, client):
        with patch(f"{ROUTES}.lastlink_service") as service:
            service.get_event.return_value = None
            service.activate_buyer_license.side_effect = BuyerNotFoundError(
                "User not found for email: buyer@example.com"
            )
            response = post_webhook(client, purchase_payload())

        assert response.status_code == 422
        assert response.json() == {"error": "User not found for email: buyer@example.com"}
        assert service.record_event.call_args.kwargs["processed"] is False

    def test_null_is_test_flag_is_accepted(self, client):
        with patch(f"{ROUTES}.lastlink_service") as service:
            service.get_event.return_value = None
            service.activate_buyer_license.return_value = "user-42"
            response = post_webhook(client, purchase_payload(IsTest=None))

        assert response.status_code == 200
        assert response.json()["userId"] == "user-42"
        assert service.record_event.call_args.kwargs["is_test"] is False

    def test_event_lookup_failure_still_activates(self, client):
        with patch(f"{ROUTES}.lastlink_service") as service:
            service.get_event.side_effect = RuntimeError("db down")
            service.activate_buyer_license.return_value = "user-42"
            response = post_webhook(client, purchase_payload())

        assert response.status_code == 200
        assert response.json()["success"] is True
        service.activate_buyer_license.assert_called_once_with("buyer@example.com")

    def test_event_log_failure_does_not_change_response(self, client):
        with patch(f"{ROUTES}.lastlink_service") as service:
            service.get_event.return_value = None
            service.activate_buyer_license.return_value = "user-42"
            service.record_event.side_effect = RuntimeError("db down")
            response = post_webhook(client, purchase_payload())

        assert response.status_code == 200
        assert response.json()["userId"] == "user-42"


class TestVerify:
    def test_requires_login(self, client):
        response = client.post("/lastlink/verify")
        assert response.status_code == 401
        assert response.json() == {"error": "Usuário não autenticado."}

    def test_no_purchase_means_not_activated(self, client, logged_in):
        with patch(f"{ROUTES}.lastlink_service") as service, \
                patch(f"{ROUTES}.license_service") as licenses:
            service.find_confirmed_purchase.return_value = None
            response = client.post("/lastlink/verify")

        assert response.json() == {"activated": False}
        licenses.activate_license.assert_not_called()

    def test_purchase_activates_license(self, client, logged_in):
        with patch(f"{ROUTES}.lastlink_service") as service, \
                patch(f"{ROUTES}.license_service") as licenses:
            service.find_confirmed_purchase.return_value = {"event_id": "evt_001"}
            response = client.post("/lastlink/verify")

        assert response.json() == {"activated": True}
        service.find_confirmed_purchase.assert_called_once_with("buyer@example.com")
        licenses.activate_license.assert_called_once_with(logged_in.id)

    def test_license_write_failure_reports_not_activated(self, client, logged_in):
        with patch(f"{ROUTES}.lastlink_service") as service, \
                patch(f"{ROUTES}.license_service") as licenses:
            service.find_confirmed_purchase.return_value = {"event_id": "evt_001"}
            licenses.activate_license.side_effect = RuntimeError("db down")
            response = client.post("/lastlink/verify")

        assert response.status_code == 200
        assert response.json() == {"activated": False}

    def test_license_status(self, client, logged_in):
        with patch(f"{ROUTES}.license_service") as licenses:
            licenses.has_license.return_value = True
            response = client.get("/lastlink/license")

        assert response.json() == {"hasLicense": True}


class TestAutoLogin:
    def test_empty_email(self, client):
        response = client.post("/lastlink/auto-login", json={"email": "   "})
        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "Email invalido."}

    def test_missing_body(self, client):
        response = client.post("/lastlink/auto-login")
        assert response.status_code == 400

    def test_unconfirmed_purchase(self, client):
        with patch(f"{ROUTES}.lastlink_service") as service:
            service.find_confirmed_purchase.return_value = None
            response = client.post("/lastlink/auto-login", json={"email": "buyer@example.com"})

        assert response.status_code == 403
        assert response.json() == {"ok": False, "error": "Pagamento nao confirmado."}

    def test_existing_user_gets_license_and_quiz_link(self, client):
        user = AuthUser(id="user-7", email="buyer@example.com")
        with patch(f"{ROUTES}.lastlink_service") as service, \
                patch(f"{ROUTES}.supabase_auth") as auth, \
                patch(f"{ROUTES}.license_service") as licenses:
            service.find_confirmed_purchase.return_value = {"event_id": "evt_001"}
            auth.find_user_by_email.return_value = user
            response = client.post("/lastlink/auto-login", json={"email": " Buyer@Example.com"})

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        auth.create_user.assert_not_called()
        licenses.activate_license.assert_called_once_with("user-7")
        licenses.link_quiz_responses.assert_called_once_with("buyer@example.com", "user-7")

    def test_new_user_is_created_with_default_password(self, client):
        with patch(f"{ROUTES}.lastlink_service") as service, \
                patch(f"{ROUTES}.supabase_auth") as auth, \
                patch(f"{ROUTES}.license_service"):
            service.find_confirmed_purchase.return_value = {"event_id": "evt_001"}
            auth.find_user_by_email.return_value = None
            auth.create_user.return_value = AuthUser(id="user-new", email="buyer@example.com")
            response = client.post("/lastlink/auto-login", json={"email": "buyer@example.com"})

        assert response.json() == {"ok": True}
        auth.create_user.assert_called_once_with("buyer@example.com", "12345678")

    def test_user_creation_failure(self, client):
        with patch(f"{ROUTES}.lastlink_service") as service, \
                patch(f"{ROUTES}.supabase_auth") as auth, \
                patch(f"{ROUTES}.license_service") as licenses:
            service.find_confirmed_purchase.return_value = {"event_id": "evt_001"}
            auth.find_user_by_email.return_value = None
            auth.create_user.side_effect = UserCreationError("email taken")
            response = client.post("/lastlink/auto-login", json={"email": "buyer@example.com"})

        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "Falha ao criar usuario."}
        licenses.activate_license.assert_not_called()

    def test_unexpected_error(self, client):
        with patch(f"{ROUTES}.lastlink_service") as service, \
                patch(f"{ROUTES}.supabase_auth") as auth:
            service.find_confirmed_purchase.return_value = {"event_id": "evt_001"}
            auth.find_user_by_email.side_effect = RuntimeError("boom")
            response = client.post("/lastlink/auto-login", json={"email": "buyer@example.com"})

        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "Erro interno."}
