"""Spoken-answer evaluation: Whisper transcription + LLM grading over OpenAI-compatible APIs."""

from __future__ import annotations

import json
import logging

import httpx

from ..models.progress import Outcome
from ..models.quiz import Grade

logger = logging.getLogger(__name__)

GRADER_SYSTEM_PROMPT = (
    "Role: a benevolent maths tutor.\n"
    "Context: an audio transcript of a student's answer compared with a formal definition.\n\n"
    "Rules:\n"
    "1. Variable tolerance: ignore upper/lower case (the student says \"A\", means \"a\"). "
    "Phonetic similarity counts.\n"
    "2. Fact check: be lenient with imprecise wording but strict with wrong mathematical claims.\n\n"
    "For the \"feedback\" field write one individual sentence about the CONTENT of the answer:\n"
    "- correct: confirm briefly and encouragingly.\n"
    "- partially correct: confirm the correct part and correct the mistake right away.\n"
    "- wrong: say clearly that it is wrong and state the right solution briefly.\n\n"
    "Respond in the language of the question.\n"
    'Output JSON: {"score": 0-10, "feedback": "At most 1-2 short sentences."}'
)


class EvaluationError(RuntimeError):
    pass


def outcome_for_score(score: int, known_score: int = 8, review_score: int = 6) -> Outcome:
    if score < review_score:
        return Outcome.WRONG
    if score < known_score:
        return Outcome.REVIEW
    return Outcome.KNOWN


class AnswerEvaluator:
    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str,
        transcription_api_key: str = "",
        transcription_model: str = "whisper-large-v3",
        transcription_base_url: str = "",
        language: str = "de",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.transcription_api_key = transcription_api_key or api_key
        self.transcription_model = transcription_model
        self.transcription_base_url = transcription_base_url or base_url
        self.language = language
        self._transport = transport

    def _client(self, base_url: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(120.0, connect=10.0),
            transport=self._transport,
        )

    async def transcribe(self, audio: bytes, filename: str = "recording.webm") -> str:
        try:
            async with self._client(self.transcription_base_url) as client:
                resp = await client.post(
                    "/audio/transcriptions",
                    files={"file": (filename, audio)},
                    data={"model": self.transcription_model, "language": self.language, "response_format": "json"},
                    headers={"Authorization": f"Bearer {self.transcription_api_key}"},
                )
                resp.raise_for_status()
                text = str(resp.json().get("text") or "")
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            raise EvaluationError(f"Transcription failed: {exc}") from exc
        logger.info("Transcript: %s", text)
        return text.strip()

    async def grade(self, question: str, model_answer: str, user_answer: str) -> Grade:
        prompt = f"Question: {question}\nModel answer: {model_answer}\nStudent: {user_answer}"
        messages = [
            {"role": "system", "content": GRADER_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        try:
            async with self._client(self.base_url) as client:
                resp = await client.post(
                    "/chat/completions",
                    json={
                        "model": self.model,
                        "messages": messages,
                        "temperature": 0.3,
                        "response_format": {"type": "json_object"},
                    },
                    headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                )
                resp.raise_for_status()
                content = resp.json()["choices"][0]["message"]["content"] or "{}"
            result = json.loads(content)
            score = int(result.get("score", 0))
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
            raise EvaluationError(f"Grading failed: {exc}") from exc

        return Grade(score=max(0, min(10, score)), feedback=str(result.get("feedback", "")))
