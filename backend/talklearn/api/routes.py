import logging
import random
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..core.config import get_config
from ..models.progress import DeckStats
from ..models.quiz import Evaluation, OutcomeRequest, OutcomeResponse, Question
from ..services.card_store import CardStore
from ..services.evaluator import AnswerEvaluator, EvaluationError, outcome_for_score
from ..services.question_bank import DeckNotFoundError, QuestionBank
from ..services.scheduler import IntervalPolicy, ReviewSession
from .deps import get_card_store, get_clock, get_evaluator, get_policy, get_question_bank, get_rng

logger = logging.getLogger(__name__)


def create_router(limiter: Limiter | None = None) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["quiz"])
    limiter = limiter or Limiter(key_func=get_remote_address)
    def _load_questions(bank: QuestionBank, filename: str) -> list[Question]:
        try:
            return bank.get_questions(filename)
        except DeckNotFoundError:
            raise HTTPException(status_code=404, detail=f"Deck not found: {filename}")

    def _open_session(
        filename: str,
        bank: QuestionBank,
        store: CardStore,
        rng: random.Random,
        clock: Callable[[], datetime],
        policy: IntervalPolicy,
    ) -> ReviewSession:
        questions = _load_questions(bank, filename)
        return ReviewSession(Path(filename).name, len(questions), store, rng=rng, clock=clock, policy=policy)

    @router.get("/files")
    async def list_files(
        bank: QuestionBank = Depends(get_question_bank),
        store: CardStore = Depends(get_card_store),
    ) -> dict[str, Any]:
        files = []
        for deck in bank.list_decks():
            stats = ReviewSession.peek_stats(store, deck.filename, deck.total_questions)
            files.append({**deck.model_dump(), "stats": stats.model_dump()})
        return {"files": files}

    @router.get("/questions")
    async def list_questions(
        file: str | None = None,
        bank: QuestionBank = Depends(get_question_bank),
    ) -> dict[str, Any]:
        if not file:
            raise HTTPException(status_code=400, detail="Filename is required")
        questions = _load_questions(bank, file)
        return {"questions": [q.model_dump() for q in questions]}

    @router.get("/decks/{filename}/next")
    async def next_card(
        filename: str,
        bank: QuestionBank = Depends(get_question_bank),
        store: CardStore = Depends(get_card_store),
        rng: random.Random = Depends(get_rng),
        clock: Callable[[], datetime] = Depends(get_clock),
        policy: IntervalPolicy = Depends(get_policy),
    ) -> dict[str, Any]:
        session = _open_session(filename, bank, store, rng, clock, policy)
        card_id = session.get_next_card()
        stats = session.get_stats()
        question = bank.get_question(filename, card_id) if card_id is not None else None
        return {
            "card_id": card_id,
            "question": question.model_dump() if question else None,
            "stats": stats.model_dump(),
        }

    @router.post("/decks/{filename}/outcome", response_model=OutcomeResponse)
    async def record_outcome(
        filename: str,
        body: OutcomeRequest,
        bank: QuestionBank = Depends(get_question_bank),
        store: CardStore = Depends(get_card_store),
        rng: random.Random = Depends(get_rng),
        clock: Callable[[], datetime] = Depends(get_clock),
        policy: IntervalPolicy = Depends(get_policy),
    ) -> OutcomeResponse:
        # No await between load and save, so one deck never interleaves in this process
        session = _open_session(filename, bank, store, rng, clock, policy)
        session.record_outcome(body.card_id, body.outcome)
        return OutcomeResponse(stats=session.get_stats(), next_card_id=session.get_next_card())

    @router.get("/decks/{filename}/stats", response_model=DeckStats)
    async def deck_stats(
        filename: str,
        bank: QuestionBank = Depends(get_question_bank),
        store: CardStore = Depends(get_card_store),
    ) -> DeckStats:
        questions = _load_questions(bank, filename)
        return ReviewSession.peek_stats(store, Path(filename).name, len(questions))

    @router.delete("/decks/{filename}/progress", response_model=DeckStats)
    async def reset_deck(
        filename: str,
        bank: QuestionBank = Depends(get_question_bank),
        store: CardStore = Depends(get_card_store),
        rng: random.Random = Depends(get_rng),
        clock: Callable[[], datetime] = Depends(get_clock),
        policy: IntervalPolicy = Depends(get_policy),
    ) -> DeckStats:
        session = _open_session(filename, bank, store, rng, clock, policy)
        session.reset_deck()
        return session.get_stats()

    @router.post("/evaluate", response_model=Evaluation)
    @limiter.limit("20/minute")
    async def evaluate_answer(
        request: Request,
        file: UploadFile | None = File(None),
        question_id: int | None = Form(None),
        deck: str | None = Form(None),
        bank: QuestionBank = Depends(get_question_bank),
        evaluator: AnswerEvaluator = Depends(get_evaluator),
    ) -> Evaluation:
        if file is None or question_id is None or not deck:
            raise HTTPException(status_code=400, detail="Missing file, question_id or deck")
        audio = await file.read()
        if not audio:
            raise HTTPException(status_code=400, detail="Audio file is empty")

        _load_questions(bank, deck)
        question = bank.get_question(deck, question_id)
        if question is None:
            raise HTTPException(status_code=404, detail="Question not found")

        try:
            user_answer = await evaluator.transcribe(audio, file.filename or "recording.webm")
            grade = await evaluator.grade(question.question, question.model_answer, user_answer)
        except EvaluationError as exc:
            logger.error("Evaluation of %s #%d failed: %s", deck, question_id, exc)
            raise HTTPException(status_code=502, detail=str(exc))

        cfg = get_config().scheduler
        return Evaluation(
            score=grade.score,
            feedback=grade.feedback,
            user_answer=user_answer,
            model_answer=question.model_answer,
            question=question.question,
            suggested_outcome=outcome_for_score(grade.score, cfg.known_score, cfg.review_score),
        )

    return router
