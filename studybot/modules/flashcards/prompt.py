"""Builds the instruction sent to the external text-generation service."""

from __future__ import annotations

from typing import Optional


SYSTEM_PROMPT = (
    "You are an expert educator who turns study notes into focused flashcards. "
    "Answer with a JSON array only; no commentary and no code fences."
)


def build_prompt(notes: str, subject: Optional[str] = None) -> str:
    """Embed ``notes`` verbatim in a single instruction string.

    The notes are not escaped or sanitized.
    """
    subject_line = f" for the subject '{subject}'" if subject else ""
    return (
        f"Create study flashcards{subject_line} from the notes below. "
        "Return a JSON array of objects, each with exactly two string keys: "
        '"question" and "answer". Keep questions clear and atomic and answers '
        "concise (1-3 sentences, plain text).\n\n"
        f"Notes:\n{notes}"
    )
