"""Turns raw text-service output plus the original notes into a bounded card list.

The heuristic is deliberately simple: at most one AI-derived card, up to four
cards cut from the notes' sentences, and a single fallback card when nothing
else was produced. No deduplication or quality filtering is applied.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any, Optional

from studybot.modules.flashcards.models.flashcards import DEFAULT_SUBJECT, Flashcard

MAX_CARDS = 5
MAX_SENTENCE_CARDS = 4
MIN_SENTENCE_LENGTH = 10
QUOTE_LENGTH = 50
FALLBACK_LENGTH = 200

AI_QUESTION = "What are the key concepts from this text?"
FALLBACK_QUESTION = "What is the main topic of this text?"

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")
_JSON_BLOCK = re.compile(r"(\{.*\}|\[.*\])", re.DOTALL)


def _answer_from_mapping(obj: Mapping[str, Any]) -> Optional[str]:
    answer = obj.get("answer")
    if isinstance(answer, str) and answer.strip():
        return answer.strip()
    return None


def _answer_from_parsed(parsed: Any) -> Optional[str]:
    if isinstance(parsed, Mapping):
        return _answer_from_mapping(parsed)
    if isinstance(parsed, list):
        for item in parsed:
            if isinstance(item, Mapping):
                answer = _answer_from_mapping(item)
                if answer:
                    return answer
    return None


def _parse_json(text: str) -> tuple[bool, Any]:
    cleaned = _CODE_FENCE.sub("", text.strip()).strip()
    try:
        return True, json.loads(cleaned)
    except json.JSONDecodeError:
        pass
    match = _JSON_BLOCK.search(cleaned)
    if match:
        try:
            return True, json.loads(match.group(1))
        except json.JSONDecodeError:
            pass
    return False, None


def extract_answer(raw: Any) -> Optional[str]:
    """Return a directly usable answer from the service output, if there is one."""
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        return _answer_from_mapping(raw)
    if isinstance(raw, list):
        return _answer_from_parsed(raw)
    if isinstance(raw, str):
        if not raw.strip():
            return None
        ok, parsed = _parse_json(raw)
        if ok:
            return _answer_from_parsed(parsed)
        return raw.strip()
    return None


def sentence_fragments(notes: str) -> list[str]:
    fragments = [s.strip() for s in _SENTENCE_SPLIT.split(notes)]
    return [s for s in fragments if len(s) > MIN_SENTENCE_LENGTH][:MAX_SENTENCE_CARDS]


def fallback_card(notes: str, subject: str) -> Flashcard:
    answer = notes[:FALLBACK_LENGTH] + ("..." if len(notes) > FALLBACK_LENGTH else "")
    return Flashcard(question=FALLBACK_QUESTION, answer=answer, subject=subject)


def normalize_response(
    raw: Any, notes: str, subject: Optional[str] = None
) -> list[Flashcard]:
    label = subject or DEFAULT_SUBJECT
    cards: list[Flashcard] = []

    answer = extract_answer(raw)
    if answer:
        cards.append(Flashcard(question=AI_QUESTION, answer=answer, subject=label))

    for fragment in sentence_fragments(notes):
        cards.append(
            Flashcard(
                question=f'What does this statement mean: "{fragment[:QUOTE_LENGTH]}..."?',
                answer=fragment,
                subject=label,
            )
        )

    if not cards:
        cards.append(fallback_card(notes, label))

    return cards[:MAX_CARDS]
