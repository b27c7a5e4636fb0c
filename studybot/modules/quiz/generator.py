"""Quiz question builders over a user's saved flashcards.

Provides:
- build_questions(cards, mode, n, rng) -> list[QuizQuestion]
- is_correct(question, mode, answer=None, choice_index=None) -> bool

Distractors and false statements are drawn from the other cards in the pool;
when the pool is too small, fixed filler options are used instead.
"""

from __future__ import annotations

import random
import re
from typing import Optional, Sequence

from studybot.modules.flashcards.models.flashcards import Flashcard
from studybot.modules.quiz.models import QuizMode, QuizQuestion

BLANK = "____"
FILLER_OPTIONS = (
    "A completely different answer",
    "Another plausible but incorrect option",
    "A scientific-sounding incorrect answer",
)
_WORD = re.compile(r"[A-Za-z][A-Za-z'-]{3,}")


def _other_answers(card: Flashcard, pool: Sequence[Flashcard]) -> list[str]:
    seen: list[str] = []
    for c in pool:
        a = c.answer.strip()
        if a and a != card.answer.strip() and a not in seen:
            seen.append(a)
    return seen


def _multiple_choice(
    card: Flashcard, pool: Sequence[Flashcard], rng: random.Random
) -> QuizQuestion:
    distractors = _other_answers(card, pool)
    rng.shuffle(distractors)
    options = [card.answer] + distractors[:3]
    for filler in FILLER_OPTIONS:
        if len(options) >= 4:
            break
        if filler not in options:
            options.append(filler)
    rng.shuffle(options)
    return QuizQuestion(prompt=card.question, answer=card.answer, options=options)


def _fill_blank(card: Flashcard, rng: random.Random) -> Optional[QuizQuestion]:
    words = _WORD.findall(card.answer)
    if not words:
        return None
    longest = max(len(w) for w in words)
    target = rng.choice([w for w in words if len(w) == longest])
    blanked = re.sub(rf"\b{re.escape(target)}\b", BLANK, card.answer, count=1)
    if blanked == card.answer:
        blanked = card.answer.replace(target, BLANK, 1)
    # Sentence cards quote their answer in the question
    if target.lower() in card.question.lower():
        return QuizQuestion(prompt=blanked, answer=target)
    return QuizQuestion(prompt=f"{card.question}\n{blanked}", answer=target)


def _true_false(
    card: Flashcard, pool: Sequence[Flashcard], rng: random.Random
) -> QuizQuestion:
    others = _other_answers(card, pool)
    truthful = not others or rng.random() < 0.5
    shown = card.answer if truthful else rng.choice(others)
    return QuizQuestion(
        prompt=f"{card.question}\nAnswer: {shown}",
        answer="true" if truthful else "false",
        options=["true", "false"],
    )


def build_questions(
    cards: Sequence[Flashcard],
    mode: QuizMode,
    n: int = 5,
    rng: Optional[random.Random] = None,
) -> list[QuizQuestion]:
    """Build up to ``n`` questions of one mode from ``cards``."""
    rng = rng or random.Random()
    pool = [c for c in cards if c.question.strip() and c.answer.strip()]
    order = list(pool)
    rng.shuffle(order)

    out: list[QuizQuestion] = []
    for card in order:
        if len(out) >= max(1, int(n)):
            break
        if mode == QuizMode.MULTIPLE_CHOICE:
            out.append(_multiple_choice(card, pool, rng))
        elif mode == QuizMode.FILL_BLANK:
            q = _fill_blank(card, rng)
            if q is not None:
                out.append(q)
        else:
            out.append(_true_false(card, pool, rng))
    return out


def _norm(text: str) -> str:
    return text.strip().lower()


def is_correct(
    question: QuizQuestion,
    mode: QuizMode,
    *,
    answer: Optional[str] = None,
    choice_index: Optional[int] = None,
) -> bool:
    if mode == QuizMode.MULTIPLE_CHOICE:
        if choice_index is not None:
            if not 0 <= choice_index < len(question.options):
                return False
            return question.options[choice_index] == question.answer
        return answer is not None and _norm(answer) == _norm(question.answer)
    if answer is None:
        return False
    return _norm(answer) == _norm(question.answer)
