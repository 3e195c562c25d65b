# -------------------------------------------------
# STANDARD IMPORTS
# -------------------------------------------------
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

# -------------------------------------------------
# CONFIG & DB
# -------------------------------------------------
from thinkandtalk.config import get_allowed_origins
from thinkandtalk.db import get_db
from thinkandtalk.db_auto_migrate import run_migrations

# -------------------------------------------------
# ROUTERS
# -------------------------------------------------
from thinkandtalk.routes.lastlink_routes import router as lastlink_router
from thinkandtalk.routes.quiz_routes import router as quiz_router
from thinkandtalk.routes.stripe_routes import router as stripe_router
from thinkandtalk.routes.teleprompter_routes import router as teleprompter_router

# -------------------------------------------------
# LOGGING SETUP
# -------------------------------------------------
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("thinkandtalk-backend")

# -------------------------------------------------
# FASTAPI APP
# -------------------------------------------------
app = FastAPI(
    title="ThinkAndTalk API",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type", "x-webhook-token"],
)


# -------------------------------------------------
# ERROR BODIES ({"error": ...} for the front-end)
# -------------------------------------------------
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
@app.exception_handler(ValidationError)
async def payload_error_handler(request: Request, exc: Exception):
    logger.warning("Invalid payload on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid payload"},
    )


# -------------------------------------------------
# STARTUP LIFECYCLE (MIGRATIONS)
# -------------------------------------------------
@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Startup event triggered")

    try:
        logger.info("🛠 Running DB migrations...")
        run_migrations()
        logger.info("✅ Migrations complete")
    except Exception as e:
        logger.error(f"❌ Migration error: {e}")


# -------------------------------------------------
# ROUTERS
# -------------------------------------------------
app.include_router(lastlink_router)
app.include_router(stripe_router)
app.include_router(teleprompter_router)
app.include_router(quiz_router)


# -------------------------------------------------
# HEALTH CHECK (NO DB REQUIRED)
# -------------------------------------------------
@app.get("/health", status_code=status.HTTP_200_OK)
def health():
    return {"status": "ok"}


# -------------------------------------------------
# DB TEST (CONNECTION CHECK)
# -------------------------------------------------
@app.get("/db/test", status_code=status.HTTP_200_OK)
def db_test():
    try:
        conn = get_db()
        conn.close()
        return {"db": "ok"}
    except Exception as e:
        return {"db": "error", "detail": str(e)}
