# backend/thinkandtalk/services/script_service.py

import json
import logging
import re
import time
from typing import Any, Dict, List, Optional, Tuple

import requests
from psycopg2.extras import Json

from thinkandtalk import config
from thinkandtalk.config import get_required_env
from thinkandtalk.db import get_db
from thinkandtalk.models.teleprompter import GeneratedScript, ScriptRequest
from thinkandtalk.services import script_prompts

logger = logging.getLogger("thinkandtalk-backend.script-service")

HISTORY_LIMIT = 20
MAX_QUESTIONS = 3

_FENCE_START = re.compile(r"^```(?:json)?", re.IGNORECASE)
_FENCE_END = re.compile(r"```$")


class ScriptGenerationError(Exception):
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


# -------------------------------------------------
# AI GATEWAY (OpenAI-compatible chat completions)
# -------------------------------------------------
def chat_completion(system: str, user: str) -> Dict[str, Any]:
    try:
        api_key = get_required_env("AI_GATEWAY_API_KEY")
    except RuntimeError:
        raise ScriptGenerationError("AI_GATEWAY_API_KEY não configurada")

    start = time.time()
    try:
        response = requests.post(
            config.AI_GATEWAY_URL,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": config.AI_MODEL,
                "messages": [
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
            },
            timeout=config.AI_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.error(f"[TRACE] stage=ai_request FAIL t={time.time() - start:.3f}s error={e}")
        raise ScriptGenerationError("Não foi possível contatar a API de IA")

    logger.info(f"[TRACE] stage=ai_request end status={response.status_code} t={time.time() - start:.3f}s")

    if response.status_code == 429:
        raise ScriptGenerationError(
            "Limite de requisições excedido. Tente novamente em alguns minutos.", 429
        )
    if response.status_code == 402:
        raise ScriptGenerationError(
            "Créditos insuficientes. Adicione créditos à sua conta.", 402
        )
    if not response.ok:
        logger.error("AI gateway error [%s] → %s", response.status_code, response.text)
        raise ScriptGenerationError(f"Erro na API de IA: {response.status_code}")

    try:
        return response.json()
    except ValueError:
        raise ScriptGenerationError("Resposta inválida da API de IA")


def message_content(data: Dict[str, Any]) -> str:
    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


def parse_script_content(raw_content: str) -> Tuple[str, List[str]]:
    """
    Extracts {"script", "questions"} from the model answer, tolerating
    markdown code fences. Non-JSON answers are taken as the script itself.
    """
    script = raw_content
    questions: List[str] = []

    cleaned = _FENCE_END.sub("", _FENCE_START.sub("", raw_content.strip())).strip()
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        return script, questions

    if isinstance(parsed, dict):
        if isinstance(parsed.get("script"), str):
            script = parsed["script"]
        if isinstance(parsed.get("questions"), list):
            questions = [q for q in parsed["questions"] if isinstance(q, str)][:MAX_QUESTIONS]

    return script, questions


# -------------------------------------------------
# GENERATION
# -------------------------------------------------
def generate(request: ScriptRequest) -> GeneratedScript:
    if request.is_refinement:
        logger.info("Refining existing script")
        prompt = script_prompts.refinement_prompt(request)
    else:
        target = script_prompts.word_target(request.parameters)
        logger.info(
            "Phase 1: prompt engineer (target %s words, %s-%s)",
            target.words,
            target.min_words,
            target.max_words,
        )
        engineer = script_prompts.prompt_engineer_prompt(request)
        generated_prompt = message_content(chat_completion(engineer.system, engineer.user))
        logger.info("Phase 1 done: prompt with %s chars", len(generated_prompt))

        logger.info("Phase 2: specialist editor")
        prompt = script_prompts.editor_prompt(request, generated_prompt)

    user_prompt = script_prompts.append_feedback(prompt.user, request.feedback)
    data = chat_completion(prompt.system, user_prompt)

    script, questions = parse_script_content(message_content(data))
    if not script:
        raise ScriptGenerationError("A IA não retornou um roteiro válido")

    return GeneratedScript(script=script, questions=questions, raw_response=data)


# -------------------------------------------------
# PERSISTENCE (teleprompter_scripts)
# -------------------------------------------------
def save_script(user_id: str, request: ScriptRequest, result: GeneratedScript) -> Optional[str]:
    """Stores the script; returns its id, or None when storage failed."""
    conn = None
    try:
        conn = get_db()
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO teleprompter_scripts
                (user_id, news_ids_json, parameters_json, script_text, raw_ai_response)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id
            """,
            (
                user_id,
                Json([n.id for n in request.news_items]),
                Json(request.parameters.to_dict()),
                result.script,
                json.dumps(result.raw_response),
            ),
        )
        row = cur.fetchone()
        conn.commit()
    except Exception as e:
        if conn:
            conn.rollback()
        logger.error("Erro ao salvar roteiro: %s", e)
        return None
    finally:
        if conn:
            conn.close()

    return str(row["id"]) if row else None


def list_scripts(user_id: str, limit: int = HISTORY_LIMIT) -> List[Dict[str, Any]]:
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            """
            SELECT id, created_at, script_text, news_ids_json, parameters_json
            FROM teleprompter_scripts
            WHERE user_id = %s
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (user_id, limit),
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return [
        {
            "id": str(row["id"]),
            "createdAt": row["created_at"].isoformat() if row["created_at"] else None,
            "scriptText": row["script_text"],
            "newsIds": row["news_ids_json"] or [],
            "parameters": row["parameters_json"] or {},
        }
        for row in rows
    ]


def latest_script(user_id: str) -> Optional[str]:
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            """
            SELECT script_text
            FROM teleprompter_scripts
            WHERE user_id = %s
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (user_id,),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    return row["script_text"] if row else None


def delete_script(user_id: str, script_id: str) -> bool:
    conn = get_db()
    try:
        cur = conn.cursor()
        cur.execute(
            "DELETE FROM teleprompter_scripts WHERE id = %s AND user_id = %s",
            (script_id, user_id),
        )
        deleted = cur.rowcount > 0
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    return deleted
