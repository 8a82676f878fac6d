import random
from collections.abc import Callable
from datetime import datetime
from functools import lru_cache

from fastapi import Depends, HTTPException, Request

from ..core.config import get_config
from ..models.progress import utcnow
from ..services.card_store import CardStore
from ..services.evaluator import AnswerEvaluator
from ..services.progress_port import ProgressPort, SqlProgressPort
from ..services.question_bank import QuestionBank
from ..services.scheduler import IntervalPolicy


def get_llm_config(request: Request) -> dict:
    """Extract LLM configuration from request headers (BYOK) or API token."""
    cfg = get_config()

    # 1. API token: use the server-side LLM config
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        token = auth[7:]
        if cfg.security.api_token and token == cfg.security.api_token:
            return {"base_url": cfg.llm.base_url, "api_key": cfg.llm.api_key, "model": cfg.llm.model}
        raise HTTPException(401, "Invalid API token")

    # 2. BYOK: LLM config from headers
    api_key = request.headers.get("X-LLM-API-Key", "")
    if api_key:
        return {
            "base_url": request.headers.get("X-LLM-Base-URL", "") or cfg.llm.base_url,
            "api_key": api_key,
            "model": request.headers.get("X-LLM-Model", "") or cfg.llm.model,
        }

    # 3. Fallback to config.yaml
    if cfg.llm.api_key and cfg.llm.api_key != "YOUR_API_KEY":
        return {"base_url": cfg.llm.base_url, "api_key": cfg.llm.api_key, "model": cfg.llm.model}

    raise HTTPException(400, "Missing X-LLM-API-Key header. Configure your API key in Settings.")


def get_evaluator(llm_config: dict = Depends(get_llm_config)) -> AnswerEvaluator:
    cfg = get_config().llm
    return AnswerEvaluator(
        api_key=llm_config["api_key"],
        model=llm_config["model"],
        base_url=llm_config["base_url"],
        transcription_api_key=cfg.transcription_api_key,
        transcription_model=cfg.transcription_model,
        transcription_base_url=cfg.transcription_base_url,
        language=cfg.language,
    )


@lru_cache
def get_question_bank() -> QuestionBank:
    cfg = get_config()
    return QuestionBank(cfg.data.questions_dir, delimiter=cfg.data.delimiter)


def get_progress_port() -> ProgressPort:
    from ..core.db import engine

    return SqlProgressPort(engine)


def get_clock() -> Callable[[], datetime]:
    return utcnow


@lru_cache
def get_rng() -> random.Random:
    return random.Random(get_config().scheduler.seed)


def get_policy() -> IntervalPolicy:
    return IntervalPolicy.from_config(get_config().scheduler)


def get_card_store(
    port: ProgressPort = Depends(get_progress_port),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> CardStore:
    return CardStore(port, clock=clock)
