"""Deterministic pattern scoring of operator instructions."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .catalog import PatternCatalog, TaskType

CONFIDENCE_THRESHOLD = 0.3

_DISALLOWED = re.compile(r"[^a-z0-9\s\-_./:]")


def normalize(text: str) -> str:
    """Lowercase, drop punctuation other than ``- _ . / :`` and collapse spaces."""
    return " ".join(_DISALLOWED.sub(" ", text.lower()).split())


def tokenize(normalized: str) -> list[str]:
    tokens = (t.strip(".:/") for t in normalized.split())
    return [t for t in tokens if t]


@dataclass(frozen=True)
class ClassificationResult:
    type: TaskType
    confidence: float
    matched_pattern: str | None
    candidate_scores: dict[str, float] = field(default_factory=dict)
    score: float = 0.0

    @property
    def ambiguous(self) -> bool:
        return self.type is TaskType.UNKNOWN

    def closest(self, limit: int = 3) -> list[TaskType]:
        """Known task types ranked by score, best first, zero scores dropped."""
        ranked = sorted(
            ((s, t) for t, s in self.candidate_scores.items() if s > 0),
            key=lambda pair: -pair[0],
        )
        return [TaskType(t) for _, t in ranked[:limit]]


class IntentClassifier:
    """Score an instruction against every trigger phrase in the catalog.

    A phrase word counts as found when it and an instruction token are
    substrings of one another (either way round) or share a synonym group.
    The raw score is ``(found + bonus) / len(words)`` where ``bonus`` equals
    the phrase's word count if the whole phrase occurs contiguously, so raw
    scores span 0..2 and the reported confidence is capped at 1.0. The first
    best phrase in catalog order wins ties.
    """

    def __init__(
        self, catalog: PatternCatalog | None = None, threshold: float = CONFIDENCE_THRESHOLD
    ) -> None:
        self.catalog = catalog or PatternCatalog()
        self.threshold = threshold

    def _word_found(self, word: str, tokens: list[str]) -> bool:
        return any(
            word in tok or tok in word or self.catalog.are_synonyms(tok, word) for tok in tokens
        )

    def score_phrase(self, normalized: str, tokens: list[str], phrase: str) -> float:
        words = phrase.split()
        found = sum(1 for w in words if self._word_found(w, tokens))
        if phrase in normalized:
            found += len(words)
        return found / len(words)

    def classify(self, instruction: str) -> ClassificationResult:
        normalized = normalize(instruction or "")
        tokens = tokenize(normalized)

        best_type: TaskType | None = None
        best_phrase: str | None = None
        best_score = 0.0
        per_type: dict[str, float] = {}

        if tokens:
            for task_type, pattern in self.catalog:
                type_best = 0.0
                for phrase in pattern.trigger_phrases:
                    score = self.score_phrase(normalized, tokens, phrase)
                    type_best = max(type_best, score)
                    if score > best_score:
                        best_type, best_phrase, best_score = task_type, phrase, score
                per_type[task_type.value] = round(type_best, 3)

        confidence = round(min(best_score, 1.0), 3)
        if best_type is None or best_score < self.threshold:
            return ClassificationResult(
                type=TaskType.UNKNOWN,
                confidence=confidence,
                matched_pattern=None,
                candidate_scores=per_type,
                score=best_score,
            )
        return ClassificationResult(
            type=best_type,
            confidence=confidence,
            matched_pattern=best_phrase,
            candidate_scores=per_type,
            score=best_score,
        )


__all__ = [
    "CONFIDENCE_THRESHOLD",
    "ClassificationResult",
    "IntentClassifier",
    "normalize",
    "tokenize",
]
