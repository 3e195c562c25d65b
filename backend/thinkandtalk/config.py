import os
from typing import List

from dotenv import load_dotenv

# Loads backend/.env when present; real env vars win.
load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", ".env"))


# -------------------------------------------------
# ENV HELPERS
# -------------------------------------------------
def get_required_env(name: str) -> str:
    value = os.getenv(name)
    if not value or not value.strip():
        raise RuntimeError(f"❌ Missing required env var: {name}")
    return value


def get_env(name: str, default: str = "") -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


# -------------------------------------------------
# CORS
# -------------------------------------------------
DEFAULT_ALLOWED_ORIGINS = [
    "https://thinkandtalk.site",
    "https://www.thinkandtalk.site",
    "https://thinkandtalk.lovable.app",
    "http://localhost:5173",
    "http://localhost:3000",
]


def get_allowed_origins() -> List[str]:
    raw = get_env("ALLOWED_ORIGINS")
    if not raw:
        return list(DEFAULT_ALLOWED_ORIGINS)
    return [o.strip().rstrip("/") for o in raw.split(",") if o.strip()]


def is_allowed_origin(origin: str) -> bool:
    if not origin:
        return False
    return origin.rstrip("/") in {o.rstrip("/") for o in get_allowed_origins()}


# -------------------------------------------------
# AI GATEWAY
# -------------------------------------------------
AI_GATEWAY_URL = get_env(
    "AI_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1/chat/completions"
)
AI_MODEL = get_env("AI_MODEL", "google/gemini-2.5-flash")
AI_TIMEOUT_SECONDS = int(get_env("AI_TIMEOUT_SECONDS", "120"))


# -------------------------------------------------
# LASTLINK
# -------------------------------------------------
PURCHASE_CONFIRMED_EVENT = "Purchase_Order_Confirmed"
AUTO_LOGIN_DEFAULT_PASSWORD = get_env("AUTO_LOGIN_DEFAULT_PASSWORD", "12345678")
