"""Prompt templates for category suggestions."""

from __future__ import annotations

from typing import Sequence
from uuid import UUID

SYSTEM_PROMPT = "You are a helpful financial assistant. You categorize bank transactions."


def get_classification_prompt(description: str, categories: Sequence[tuple[UUID, str]]) -> str:
    """Return the user prompt asking for the best matching category id."""
    category_lines = "\n".join(f"- ID: {category_id}, Name: {name}" for category_id, name in categories)
    return (
        "Which category best fits this transaction?\n"
        f'Transaction: "{description}"\n\n'
        "Categories:\n"
        f"{category_lines}\n\n"
        "Reply ONLY with the ID of the best matching category. If unsure, reply 'null'."
    )
