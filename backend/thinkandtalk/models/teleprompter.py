# backend/thinkandtalk/models/teleprompter.py

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

# ---------------------------------------------
# INPUT LIMITS
# ---------------------------------------------
MAX_NEWS_ITEMS = 50
MAX_ID_LENGTH = 100
MAX_TITLE_LENGTH = 500
MAX_CONTENT_LENGTH = 50_000
MAX_PROMPT_LENGTH = 5_000
MAX_FEEDBACK_ITEMS = 10

# ---------------------------------------------
# ALLOWED PARAMETER VALUES (first = default)
# ---------------------------------------------
VALID_TONES = ["neutro", "jornalistico", "educativo", "tecnico", "humoristico", "descontraido", "storytelling"]
VALID_AUDIENCES = ["publico_geral", "criancas", "adolescentes", "adultos", "especialistas"]
VALID_SCRIPT_TYPES = ["narracao_simples", "video_curto", "video_longo", "telejornal", "podcast"]
VALID_DURATION_UNITS = ["minutes", "words"]


@dataclass
class NewsItem:
    id: str
    title: str
    summary: Optional[str] = None
    content: Optional[str] = None


@dataclass
class EditorialParameters:
    tone: str = "neutro"
    audience: str = "publico_geral"
    audienceAgeMin: int = 18
    audienceAgeMax: int = 45
    audienceGenderSplit: int = 50
    language: str = "pt-BR"
    duration: str = "3"
    durationUnit: str = "minutes"
    scriptType: str = "narracao_simples"
    includeCta: bool = False
    ctaText: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FeedbackAnswer:
    question: str
    answer: str


@dataclass
class ScriptRequest:
    news_items: List[NewsItem]
    parameters: EditorialParameters
    complementary_prompt: Optional[str] = None
    refinement_prompt: Optional[str] = None
    base_script: Optional[str] = None
    feedback: Optional[List[FeedbackAnswer]] = None

    @property
    def is_refinement(self) -> bool:
        return bool(self.refinement_prompt and self.base_script)


@dataclass
class GeneratedScript:
    script: str
    questions: List[str]
    raw_response: Dict[str, Any]
