"""Remediation package — planning, confirmation, mutation and run dispatch."""

from .planner import plan_remediation
from .confirmation import (
    ConfirmationController,
    ConfirmationMode,
    ItemAnswer,
    decide,
    parse_answer,
    parse_mode,
    prompt_for_mode,
)
from .executor import MutationExecutor
from .runner import RemediationRunner

__all__ = [
    "plan_remediation",
    "ConfirmationController",
    "ConfirmationMode",
    "ItemAnswer",
    "decide",
    "parse_answer",
    "parse_mode",
    "prompt_for_mode",
    "MutationExecutor",
    "RemediationRunner",
]
