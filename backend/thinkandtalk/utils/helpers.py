import datetime
from typing import Any, Dict, Optional


# -------------------------------------------------
# REQUEST HELPERS
# -------------------------------------------------
def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Returns the token from an "Authorization: Bearer <token>" header,
    or "" when the header is missing or malformed.
    """
    if not authorization:
        return ""

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return ""

    return parts[1]


async def read_json_body(request) -> Dict[str, Any]:
    """Request body as a dict; {} for an empty, non-JSON or non-object body."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def normalize_email(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


# -------------------------------------------------
# TIME
# -------------------------------------------------
def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def from_unix(value: Optional[int]) -> Optional[datetime.datetime]:
    """Stripe timestamps are seconds since epoch."""
    if not value:
        return None
    return datetime.datetime.fromtimestamp(int(value), tz=datetime.timezone.utc)
