# backend/thinkandtalk/routes/teleprompter_routes.py

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from thinkandtalk.auth import get_current_user
from thinkandtalk.services import script_service
from thinkandtalk.services.script_sanitizer import sanitize_request
from thinkandtalk.services.script_service import ScriptGenerationError
from thinkandtalk.services.supabase_auth import AuthUser

logger = logging.getLogger("thinkandtalk-backend.teleprompter")

router = APIRouter(prefix="/teleprompter", tags=["teleprompter"])


# -------------------------------------------------
# GENERATE / REFINE SCRIPT
# -------------------------------------------------
@router.post("/generate")
async def generate_script(request: Request, user: AuthUser = Depends(get_current_user)):
    logger.info("Authenticated user: %s", user.id)

    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid JSON")
    if not isinstance(body, dict):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid JSON")

    try:
        script_request = sanitize_request(body)
    except ValueError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))

    if not script_request.news_items and not (script_request.complementary_prompt or "").strip():
        logger.warning("No news selected and no complementary prompt given")

    try:
        result = script_service.generate(script_request)
    except ScriptGenerationError as e:
        logger.error("Script generation failed [%s]: %s", e.status_code, e.message)
        return JSONResponse(status_code=e.status_code, content={"error": e.message})

    # storage failure still returns the script
    script_id = script_service.save_script(user.id, script_request, result)
    logger.info("Script generated: %s chars", len(result.script))

    return {
        "script": result.script,
        "scriptId": script_id,
        "questions": result.questions,
    }


# -------------------------------------------------
# HISTORY
# -------------------------------------------------
@router.get("/scripts")
def list_scripts(user: AuthUser = Depends(get_current_user)):
    return {"scripts": script_service.list_scripts(user.id)}


@router.get("/scripts/latest")
def latest_script(user: AuthUser = Depends(get_current_user)):
    return {"script": script_service.latest_script(user.id)}


@router.delete("/scripts/{script_id}")
def delete_script(script_id: uuid.UUID, user: AuthUser = Depends(get_current_user)):
    if not script_service.delete_script(user.id, str(script_id)):
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Script not found")
    return {"deleted": True}
