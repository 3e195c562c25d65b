# backend/thinkandtalk/routes/lastlink_routes.py

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from thinkandtalk.auth import get_current_user
from thinkandtalk.config import (
    AUTO_LOGIN_DEFAULT_PASSWORD,
    PURCHASE_CONFIRMED_EVENT,
    get_env,
)
from thinkandtalk.models.lastlink import LastlinkPayload
from thinkandtalk.services import license_service, lastlink_service, supabase_auth
from thinkandtalk.services.lastlink_service import BuyerNotFoundError
from thinkandtalk.services.supabase_auth import AuthUser, UserCreationError
from thinkandtalk.utils.helpers import extract_bearer_token, normalize_email, read_json_body

logger = logging.getLogger("thinkandtalk-backend.lastlink")

router = APIRouter(prefix="/lastlink", tags=["lastlink"])


# -------------------------------------------------
# WEBHOOK TOKEN
# -------------------------------------------------
def is_valid_webhook_token(token: Optional[str]) -> bool:
    expected = get_env("LASTLINK_WEBHOOK_TOKEN")
    if not expected or not token:
        return False
    return hmac.compare_digest(token.encode(), expected.encode())


# -------------------------------------------------
# LASTLINK WEBHOOK (Purchase_Order_Confirmed)
# -------------------------------------------------
@router.post("/webhook")
async def lastlink_webhook(
    request: Request,
    x_webhook_token: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
):
    token = x_webhook_token or extract_bearer_token(authorization)
    if not is_valid_webhook_token(token):
        logger.error("Invalid or missing webhook token")
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unauthorized")

    try:
        raw_payload = await request.json()
        payload = LastlinkPayload.model_validate(raw_payload)
    except (ValueError, ValidationError) as e:
        logger.error("Failed to parse JSON payload: %s", e)
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid JSON")

    logger.info(
        "Received Lastlink webhook: event_id=%s type=%s buyer=%s",
        payload.event_id,
        payload.event,
        payload.buyer_email,
    )

    # ------------------------------
    # Only confirmed purchases matter
    # ------------------------------
    if payload.event != PURCHASE_CONFIRMED_EVENT:
        logger.info("Ignoring event type: %s", payload.event)
        return {"message": "Event type ignored", "eventType": payload.event}

    if not payload.event_id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Missing event id")

    buyer_email = payload.buyer_email
    if not buyer_email:
        logger.error("No buyer email in payload")
        try:
            lastlink_service.record_event(
                event_id=payload.event_id,
                event_type=payload.event,
                buyer_email="UNKNOWN",
                payload=raw_payload,
                payment_id=payload.payment_id,
                is_test=bool(payload.is_test),
                processed=False,
                error_message="No buyer email in payload",
            )
        except Exception as e:
            logger.error("Failed to log event: %s", e)
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "No buyer email")

    # ------------------------------
    # Idempotency (processed flag)
    # ------------------------------
    try:
        existing = lastlink_service.get_event(payload.event_id)
    except Exception as e:
        logger.error("Failed to read event %s: %s", payload.event_id, e)
        existing = None

    if existing and existing.get("processed"):
        logger.info("Event already processed: %s", payload.event_id)
        return {"message": "Event already processed"}

    # ------------------------------
    # Activate license
    # ------------------------------
    error_message: Optional[str] = None
    user_id: Optional[str] = None

    try:
        user_id = lastlink_service.activate_buyer_license(buyer_email)
    except BuyerNotFoundError as e:
        error_message = str(e)
        logger.error(error_message)
    except Exception as e:
        error_message = f"Processing error: {e}"
        logger.exception(error_message)

    # ------------------------------
    # Log delivery (never fails the request)
    # ------------------------------
    try:
        lastlink_service.record_event(
            event_id=payload.event_id,
            event_type=payload.event,
            buyer_email=buyer_email,
            payload=raw_payload,
            payment_id=payload.payment_id,
            is_test=bool(payload.is_test),
            processed=error_message is None,
            error_message=error_message,
        )
    except Exception as e:
        logger.error("Failed to log event: %s", e)

    if error_message:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, error_message)

    return {"success": True, "message": "License activated", "userId": user_id}


# -------------------------------------------------
# VERIFY (logged-in buyer claims the purchase)
# -------------------------------------------------
@router.post("/verify")
def lastlink_verify(user: AuthUser = Depends(get_current_user)):
    if not user.email:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Usuário não autenticado.")

    try:
        purchase = lastlink_service.find_confirmed_purchase(user.email)
    except Exception as e:
        logger.error("Lastlink verify error: %s", e)
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Erro ao verificar pagamento."
        )

    if not purchase:
        return {"activated": False}

    try:
        license_service.activate_license(user.id)
    except Exception as e:
        logger.error("Failed to activate license: %s", e)
        return {"activated": False}

    return {"activated": True}


# -------------------------------------------------
# LICENSE STATUS
# -------------------------------------------------
@router.get("/license")
def license_status(user: AuthUser = Depends(get_current_user)):
    return {"hasLicense": license_service.has_license(user.id)}


# -------------------------------------------------
# AUTO LOGIN (buyer without an account yet)
# -------------------------------------------------
@router.post("/auto-login")
async def lastlink_auto_login(request: Request):
    body = await read_json_body(request)
    email = normalize_email(body.get("email"))

    if not email:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"ok": False, "error": "Email invalido."},
        )

    try:
        if not lastlink_service.find_confirmed_purchase(email):
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"ok": False, "error": "Pagamento nao confirmado."},
            )

        user = supabase_auth.find_user_by_email(email)
        if user is None:
            try:
                user = supabase_auth.create_user(email, AUTO_LOGIN_DEFAULT_PASSWORD)
            except UserCreationError:
                return JSONResponse(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    content={"ok": False, "error": "Falha ao criar usuario."},
                )

        license_service.activate_license(user.id)
        license_service.link_quiz_responses(email, user.id)

    except Exception as e:
        logger.exception("Auto-login handler error: %s", e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": "Erro interno."},
        )

    return {"ok": True}
