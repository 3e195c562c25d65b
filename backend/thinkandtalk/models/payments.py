from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class SessionRequest(BaseModel):
    # validated by the handler so the error message matches the front-end copy
    sessionId: Optional[Any] = None


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    quizResponseId: Optional[str] = None
