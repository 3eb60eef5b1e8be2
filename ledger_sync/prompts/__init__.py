"""Prompts package."""

from ledger_sync.prompts.classification import SYSTEM_PROMPT, get_classification_prompt

__all__ = [
    "SYSTEM_PROMPT",
    "get_classification_prompt",
]
