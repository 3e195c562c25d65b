# backend/thinkandtalk/routes/stripe_routes.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from thinkandtalk.auth import get_current_user, get_optional_user
from thinkandtalk.config import get_allowed_origins, get_env, is_allowed_origin
from thinkandtalk.models.payments import CheckoutRequest, SessionRequest
from thinkandtalk.services import premium_service, stripe_service
from thinkandtalk.services.stripe_service import CheckoutError, field
from thinkandtalk.services.supabase_auth import AuthUser
from thinkandtalk.utils.helpers import read_json_body

logger = logging.getLogger("thinkandtalk-backend.stripe")

router = APIRouter(prefix="/stripe", tags=["stripe"])


def resolve_site_origin(origin: Optional[str]) -> str:
    """Where Stripe sends the buyer back: caller origin if trusted, else SITE_URL."""
    if origin and is_allowed_origin(origin):
        return origin.rstrip("/")
    site_url = get_env("SITE_URL")
    if site_url:
        return site_url.rstrip("/")
    return get_allowed_origins()[0]


# -------------------------------------------------
# VERIFY ONE-TIME / PLAN PAYMENT
# -------------------------------------------------
@router.post("/verify-payment")
async def verify_payment(request: Request, user: AuthUser = Depends(get_current_user)):
    body = SessionRequest.model_validate(await read_json_body(request))

    try:
        session_id = stripe_service.clean_session_id(body.sessionId)
    except ValueError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))

    try:
        session = stripe_service.retrieve_checkout_session(session_id)

        if field(session, "payment_status") != "paid":
            return {"success": False, "isPremium": False}

        plan = premium_service.activate_from_checkout(
            user.id, user.email, session, session_id
        )
    except Exception as e:
        logger.exception("Error verifying payment: %s", e)
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Payment verification failed."
        )

    return {"success": True, "isPremium": True, "plan": plan}


# -------------------------------------------------
# CREATE SUBSCRIPTION CHECKOUT (guest or logged in)
# -------------------------------------------------
@router.post("/create-subscription-checkout")
async def create_subscription_checkout(
    request: Request,
    origin: Optional[str] = Header(None),
    user: Optional[AuthUser] = Depends(get_optional_user),
):
    body = CheckoutRequest.model_validate(await read_json_body(request))

    price_id = get_env("STRIPE_THINKANDTALK_PRICE_ID")
    if not price_id:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Price ID não configurado.")

    customer_id: Optional[str] = None
    customer_email = user.email if user else None

    try:
        if user and user.email:
            customer_id = premium_service.get_stripe_customer_id(user.id)
            if not customer_id:
                customer_id = stripe_service.find_customer_id_by_email(user.email)
                if customer_id:
                    premium_service.upsert_user(
                        user.id,
                        {"email": user.email, "stripe_customer_id": customer_id},
                    )

        metadata = {}
        if user:
            metadata["userId"] = user.id
        if body.quizResponseId:
            metadata["quizResponseId"] = body.quizResponseId

        logger.info(
            "Creating checkout session %s",
            f"for user: {user.id}" if user else "for guest",
        )

        url = stripe_service.create_subscription_checkout(
            price_id=price_id,
            origin=resolve_site_origin(origin),
            customer_id=customer_id,
            customer_email=customer_email,
            metadata=metadata,
        )
    except CheckoutError as e:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))
    except Exception as e:
        logger.exception("Error creating subscription checkout: %s", e)
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Erro ao criar sessão de checkout."
        )

    return {"url": url}


# -------------------------------------------------
# VERIFY SUBSCRIPTION (pro plan)
# -------------------------------------------------
@router.post("/verify-subscription")
async def verify_subscription(request: Request, user: AuthUser = Depends(get_current_user)):
    body = SessionRequest.model_validate(await read_json_body(request))

    try:
        session_id = stripe_service.clean_session_id(body.sessionId, require_prefix=False)
    except ValueError:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Session ID inválido.")

    try:
        session = stripe_service.retrieve_checkout_session(session_id)

        if field(session, "payment_status") != "paid":
            return {"success": False, "message": "Pagamento pendente"}
    except Exception as e:
        logger.exception("Error verifying subscription: %s", e)
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Erro ao verificar assinatura."
        )

    # Stripe already charged; a failed write is logged, not surfaced
    try:
        premium_service.activate_pro_subscription(user.id, user.email, session)
    except Exception as e:
        logger.error("Error updating user %s: %s", user.id, e)

    return {"success": True}
