# backend/thinkandtalk/services/script_sanitizer.py
"""
Turns the raw generate-script request body into typed, bounded values.

Unknown or malformed parameter values fall back to defaults instead of
failing the request; only an oversized news list is rejected.
"""

import math
from typing import Any, Dict, List, Optional

from thinkandtalk.models.teleprompter import (
    MAX_CONTENT_LENGTH,
    MAX_FEEDBACK_ITEMS,
    MAX_ID_LENGTH,
    MAX_NEWS_ITEMS,
    MAX_PROMPT_LENGTH,
    MAX_TITLE_LENGTH,
    VALID_AUDIENCES,
    VALID_DURATION_UNITS,
    VALID_SCRIPT_TYPES,
    VALID_TONES,
    EditorialParameters,
    FeedbackAnswer,
    NewsItem,
    ScriptRequest,
)


def _clip(value: Any, limit: int) -> Optional[str]:
    return value[:limit] if isinstance(value, str) else None


def _number(value: Any, default: int) -> int:
    # bool is an int subclass; treat it as missing
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return int(value)


def _choice(value: Any, allowed: List[str]) -> str:
    return value if isinstance(value, str) and value in allowed else allowed[0]


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def sanitize_news_item(item: Any, index: int) -> NewsItem:
    if not isinstance(item, dict):
        raise ValueError(f"News item {index} is invalid")

    raw_id = item.get("id")
    if isinstance(raw_id, str) and raw_id:
        item_id = raw_id[:MAX_ID_LENGTH]
    elif isinstance(raw_id, (int, float)) and not isinstance(raw_id, bool):
        item_id = str(raw_id)
    else:
        item_id = f"item-{index}"

    title = item.get("title")
    content = item.get("content")
    if isinstance(title, str):
        title = title[:MAX_TITLE_LENGTH]
    elif isinstance(content, str):
        title = content[:100]
    else:
        title = f"Item {index + 1}"

    return NewsItem(
        id=item_id,
        title=title,
        summary=_clip(item.get("summary"), MAX_CONTENT_LENGTH),
        content=_clip(content, MAX_CONTENT_LENGTH),
    )


def sanitize_parameters(params: Any) -> EditorialParameters:
    if not isinstance(params, dict):
        raise ValueError("Invalid parameters")

    age_min = _clamp(_number(params.get("audienceAgeMin"), 18), 0, 100)
    age_max = max(age_min, _clamp(_number(params.get("audienceAgeMax"), 45), 0, 100))
    gender_split = _clamp(_number(params.get("audienceGenderSplit"), 50), 0, 100)

    return EditorialParameters(
        tone=_choice(params.get("tone"), VALID_TONES),
        audience=_choice(params.get("audience"), VALID_AUDIENCES),
        audienceAgeMin=age_min,
        audienceAgeMax=age_max,
        audienceGenderSplit=gender_split,
        language=_clip(params.get("language"), 10) or "pt-BR",
        duration=_clip(params.get("duration"), 10) or "3",
        durationUnit=_choice(params.get("durationUnit"), VALID_DURATION_UNITS),
        scriptType=_choice(params.get("scriptType"), VALID_SCRIPT_TYPES),
        includeCta=params.get("includeCta") is True,
        ctaText=_clip(params.get("ctaText"), 500),
    )


def sanitize_feedback(raw: Any) -> Optional[List[FeedbackAnswer]]:
    if not isinstance(raw, list):
        return None

    answers = []
    for entry in raw[:MAX_FEEDBACK_ITEMS]:
        if not isinstance(entry, dict):
            continue
        question, answer = entry.get("question"), entry.get("answer")
        if isinstance(question, str) and isinstance(answer, str):
            answers.append(FeedbackAnswer(question=question[:500], answer=answer[:1000]))
    return answers


def sanitize_request(body: Dict[str, Any]) -> ScriptRequest:
    raw_items = body.get("newsItems")
    news_items: List[NewsItem] = []
    if isinstance(raw_items, list):
        if len(raw_items) > MAX_NEWS_ITEMS:
            raise ValueError(f"Too many news items. Maximum is {MAX_NEWS_ITEMS}")
        news_items = [sanitize_news_item(item, i) for i, item in enumerate(raw_items)]

    parameters = sanitize_parameters(body.get("parameters"))

    complementary = _clip(body.get("complementaryPrompt"), MAX_PROMPT_LENGTH)
    if complementary is None:
        # older clients sent it inside parameters
        complementary = _clip((body.get("parameters") or {}).get("complementaryPrompt"), MAX_PROMPT_LENGTH)

    return ScriptRequest(
        news_items=news_items,
        parameters=parameters,
        complementary_prompt=complementary,
        refinement_prompt=_clip(body.get("refinementPrompt"), MAX_PROMPT_LENGTH),
        base_script=_clip(body.get("baseScript"), MAX_CONTENT_LENGTH),
        feedback=sanitize_feedback(body.get("feedback")),
    )
