from .flashcards import DEFAULT_SUBJECT, Flashcard, GenerationOutcome

__all__ = [
    "DEFAULT_SUBJECT",
    "Flashcard",
    "GenerationOutcome",
]
