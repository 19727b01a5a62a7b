"""Prompt marker conventions.

A prompt starting with ``Q:`` and whitespace is a question: the assistant
must answer it before acting. A prompt starting with ``commit!`` (any case)
approves git commits for the rest of the session.
"""

import re

from .models import PromptClassification

QUESTION_MARKER = re.compile(r"^Q:\s")
QUESTION_STRIP = re.compile(r"^Q:\s*")

COMMIT_MARKER = re.compile(r"^commit!(\s|$)", re.IGNORECASE)
COMMIT_STRIP = re.compile(r"^commit!\s*", re.IGNORECASE)


def is_question(prompt: str) -> bool:
    return bool(QUESTION_MARKER.match(prompt))


def is_commit_approval(prompt: str) -> bool:
    return bool(COMMIT_MARKER.match(prompt))


def classify_prompt(prompt: str | None) -> PromptClassification:
    """Match a raw prompt against both conventions independently.

    Each matched convention gets its own residual, stripped from the raw
    prompt. ``residual`` has every matched marker removed.
    """
    if not isinstance(prompt, str):
        return PromptClassification()

    result = PromptClassification(residual=prompt)

    if is_question(prompt):
        result.is_question = True
        result.question_text = QUESTION_STRIP.sub("", prompt, count=1)
        result.residual = result.question_text

    if is_commit_approval(prompt):
        result.is_commit_approved = True
        result.commit_text = COMMIT_STRIP.sub("", prompt, count=1)
        result.residual = COMMIT_STRIP.sub("", result.residual, count=1)

    return result
