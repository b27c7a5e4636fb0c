"""Flashcards module exports."""

from .models.flashcards import Flashcard, GenerationOutcome
from .normalizer import normalize_response
from .prompt import build_prompt

__all__ = [
    "Flashcard",
    "GenerationOutcome",
    "normalize_response",
    "build_prompt",
]
