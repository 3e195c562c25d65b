# backend/thinkandtalk/routes/quiz_routes.py

import logging
import re
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from thinkandtalk.auth import get_admin_user, get_optional_user
from thinkandtalk.services import quiz_analytics, quiz_service
from thinkandtalk.services.quiz_service import QuizResponseNotFound
from thinkandtalk.services.supabase_auth import AuthUser
from thinkandtalk.utils.helpers import normalize_email

logger = logging.getLogger("thinkandtalk-backend.quiz")

router = APIRouter(prefix="/quiz", tags=["quiz"])

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AnswerPayload(BaseModel):
    questionKey: str
    value: Any


class EmailPayload(BaseModel):
    email: str


class FunnelEventPayload(BaseModel):
    event: str


@router.post("/responses", status_code=status.HTTP_201_CREATED)
def start_quiz():
    return {"id": quiz_service.start_response()}


@router.patch("/responses/{response_id}")
def save_answer(response_id: uuid.UUID, data: AnswerPayload):
    try:
        quiz_service.save_answer(str(response_id), data.questionKey, data.value)
    except ValueError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except QuizResponseNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Quiz response not found")
    return {"saved": True}


@router.post("/responses/{response_id}/coupon")
def reveal_coupon(response_id: uuid.UUID):
    try:
        quiz_service.reveal_coupon(str(response_id))
    except QuizResponseNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Quiz response not found")
    return {"couponRevealed": True}


@router.post("/responses/{response_id}/email")
def submit_email(
    response_id: uuid.UUID,
    data: EmailPayload,
    user: Optional[AuthUser] = Depends(get_optional_user),
):
    email = normalize_email(data.email)
    if not EMAIL_RE.match(email):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Email invalido.")

    try:
        quiz_service.submit_email(str(response_id), email, user.id if user else None)
    except QuizResponseNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Quiz response not found")
    return {"completed": True}


@router.post("/responses/{response_id}/events")
def record_funnel_event(response_id: uuid.UUID, data: FunnelEventPayload):
    try:
        quiz_service.record_funnel_event(str(response_id), data.event)
    except ValueError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except QuizResponseNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Quiz response not found")
    return {"recorded": True}


# -------------------------------------------------
# ANALYTICS (admin only)
# -------------------------------------------------
@router.get("/analytics")
def quiz_funnel_analytics(user: AuthUser = Depends(get_admin_user)):
    logger.info("📊 Quiz analytics requested by %s", user.id)
    return quiz_analytics.build_report()
