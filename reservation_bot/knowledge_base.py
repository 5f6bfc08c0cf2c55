"""
Knowledge-base question answering, the last tier before "didn't understand".
"""

import logging
import re
from dataclasses import dataclass
from typing import Protocol

from data.restaurant_content import get_faq_pairs
from reservation_bot.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError
from reservation_bot.config import settings
from reservation_bot.observability import trace_span

logger = logging.getLogger(__name__)

STOPWORDS = {
    "a", "an", "the", "is", "are", "do", "does", "you", "your", "i", "my", "me", "we",
    "can", "to", "of", "for", "there", "what", "how", "in", "at", "on", "it", "any",
}


@dataclass(frozen=True)
class QnAAnswer:
    answer: str
    confidence: float
    question: str | None = None


class KnowledgeBase(Protocol):
    def get_answers(self, text: str) -> list[QnAAnswer]: ...


def _tokens(text: str) -> set[str]:
    return {t for t in re.findall(r"[a-z0-9]+", text.lower()) if t not in STOPWORDS}


class InMemoryKnowledgeBase:
    """
    Token-overlap matcher over (question, answer) pairs.

    Confidence is the Jaccard similarity between the content words of the
    user text and a stored question. Answers below ``min_confidence`` are
    dropped; each answer appears once, with its best-matching question.
    """

    def __init__(self, pairs: list[tuple[str, str]] | None = None, min_confidence: float | None = None):
        self.pairs = pairs if pairs is not None else get_faq_pairs()
        self.min_confidence = (
            min_confidence if min_confidence is not None else settings.kb_min_confidence
        )
        self._indexed = [(question, answer, _tokens(question)) for question, answer in self.pairs]

    def get_answers(self, text: str) -> list[QnAAnswer]:
        words = _tokens(text or "")
        if not words:
            return []

        best: dict[str, QnAAnswer] = {}
        for question, answer, question_words in self._indexed:
            if not question_words:
                continue
            score = len(words & question_words) / len(words | question_words)
            if score < self.min_confidence:
                continue
            if answer not in best or score > best[answer].confidence:
                best[answer] = QnAAnswer(answer=answer, confidence=round(score, 4), question=question)

        return sorted(best.values(), key=lambda a: a.confidence, reverse=True)


class KnowledgeBaseClient:
    """
    Knowledge base access with circuit breaker protection.
    Errors and an open breaker degrade to "no answer".
    """

    def __init__(self, knowledge_base: KnowledgeBase, circuit_breaker: CircuitBreaker | None = None):
        self.knowledge_base = knowledge_base
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.circuit_breaker_failure_threshold,
            timeout=settings.circuit_breaker_timeout,
            name="KnowledgeBaseCircuitBreaker",
        )

    def get_answers(self, text: str) -> list[QnAAnswer]:
        with trace_span("knowledge_base_query"):
            try:
                answers = self.circuit_breaker.call(self.knowledge_base.get_answers, text)
            except CircuitBreakerOpenError:
                logger.warning("Knowledge base circuit open, skipping lookup")
                return []
            except Exception as e:
                logger.error(f"Knowledge base lookup failed: {e}", exc_info=True)
                return []

        return list(answers or [])

    def get_circuit_breaker_state(self) -> dict:
        return self.circuit_breaker.get_state()
