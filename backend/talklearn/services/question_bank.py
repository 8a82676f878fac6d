"""CSV question decks: one ``question;answer`` pair per line, no header."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from ..models.quiz import DeckInfo, Question

logger = logging.getLogger(__name__)


class DeckNotFoundError(LookupError):
    pass


class QuestionBank:
    def __init__(self, questions_dir: str | Path, delimiter: str = ";") -> None:
        self.questions_dir = Path(questions_dir)
        self.delimiter = delimiter
        self._cache: dict[str, list[Question]] = {}

    def _path_for(self, filename: str) -> Path:
        # Only plain file names inside the questions directory
        return self.questions_dir / Path(filename).name

    def list_decks(self) -> list[DeckInfo]:
        if not self.questions_dir.is_dir():
            return []
        return [
            DeckInfo(filename=path.name, total_questions=len(self.get_questions(path.name)))
            for path in sorted(self.questions_dir.glob("*.csv"))
        ]

    def get_questions(self, filename: str) -> list[Question]:
        name = Path(filename).name
        if name in self._cache:
            return self._cache[name]

        path = self._path_for(name)
        if not path.is_file():
            raise DeckNotFoundError(f"File not found: {name}")

        questions: list[Question] = []
        with path.open("r", encoding="utf-8-sig", errors="replace", newline="") as handle:
            for row in csv.reader(handle, delimiter=self.delimiter):
                question = row[0].strip() if len(row) > 0 else ""
                answer = row[1].strip() if len(row) > 1 else ""
                if not question or not answer:
                    continue
                questions.append(Question(id=len(questions), question=question, model_answer=answer))

        logger.info("Loaded %d questions from %s", len(questions), name)
        self._cache[name] = questions
        return questions

    def get_question(self, filename: str, question_id: int) -> Question | None:
        questions = self.get_questions(filename)
        if 0 <= question_id < len(questions):
            return questions[question_id]
        return None
