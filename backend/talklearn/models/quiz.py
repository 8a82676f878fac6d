from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from .progress import DeckStats, Outcome


class Question(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    id: int
    question: str
    model_answer: str


class DeckInfo(BaseModel):
    filename: str
    total_questions: int


class Grade(BaseModel):
    score: int
    feedback: str = ""


class Evaluation(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    score: int
    feedback: str
    user_answer: str
    model_answer: str
    question: str
    suggested_outcome: Outcome


class OutcomeRequest(BaseModel):
    card_id: int
    outcome: Outcome


class OutcomeResponse(BaseModel):
    stats: DeckStats
    next_card_id: int | None = None
