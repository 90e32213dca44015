"""
Confirmation Controller — run-level gate deciding, per item, whether to mutate.

Modes:
  - APPLY_ALL     every item proceeds without prompting
  - CONFIRM_EACH  the operator answers proceed / skip / yes-to-all per item
  - ABORT         nothing proceeds

CONFIRM_EACH -> APPLY_ALL (via yes-to-all) is the only transition after the
mode has been chosen. The transition itself is the pure function decide();
the controller only adds the input/output side effects around it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from ..errors import InputValidationError
from ..models import RemediationItem

logger = logging.getLogger("tag_governance.remediation.confirmation")


class ConfirmationMode(str, Enum):
    APPLY_ALL = "apply-all"
    CONFIRM_EACH = "confirm-each"
    ABORT = "abort"


class ItemAnswer(str, Enum):
    PROCEED = "proceed"
    SKIP = "skip"
    YES_TO_ALL = "yes-to-all"


_MODE_ALIASES = {
    "a": ConfirmationMode.APPLY_ALL,
    "all": ConfirmationMode.APPLY_ALL,
    "apply-all": ConfirmationMode.APPLY_ALL,
    "c": ConfirmationMode.CONFIRM_EACH,
    "confirm": ConfirmationMode.CONFIRM_EACH,
    "confirm-each": ConfirmationMode.CONFIRM_EACH,
    "q": ConfirmationMode.ABORT,
    "x": ConfirmationMode.ABORT,
    "abort": ConfirmationMode.ABORT,
}

_ANSWER_ALIASES = {
    "y": ItemAnswer.PROCEED,
    "yes": ItemAnswer.PROCEED,
    "n": ItemAnswer.SKIP,
    "no": ItemAnswer.SKIP,
    "s": ItemAnswer.SKIP,
    "skip": ItemAnswer.SKIP,
    "a": ItemAnswer.YES_TO_ALL,
    "all": ItemAnswer.YES_TO_ALL,
    "yes-to-all": ItemAnswer.YES_TO_ALL,
}

MODE_PROMPT = "Select mode: [A] Apply all  [C] Confirm each  [Q] Abort: "
ITEM_PROMPT = "Proceed? [Y] Yes  [N] No/skip  [A] Yes to all remaining: "


def parse_mode(text: str) -> ConfirmationMode:
    """Parse an operator's mode selection. Never defaults."""
    key = (text or "").strip().lower().replace("_", "-")
    if key not in _MODE_ALIASES:
        raise InputValidationError(f"Invalid mode selection: {text!r}")
    return _MODE_ALIASES[key]


def parse_answer(text: str) -> ItemAnswer:
    """Parse an operator's per-item answer. Never defaults."""
    key = (text or "").strip().lower().replace("_", "-")
    if key not in _ANSWER_ALIASES:
        raise InputValidationError(f"Invalid answer: {text!r}")
    return _ANSWER_ALIASES[key]


def decide(mode: ConfirmationMode, answer: ItemAnswer | None = None) -> tuple[bool, ConfirmationMode]:
    """
    Pure transition function.

    Returns (proceed, next_mode). `answer` is only consulted in CONFIRM_EACH.
    """
    if mode is ConfirmationMode.ABORT:
        return False, ConfirmationMode.ABORT
    if mode is ConfirmationMode.APPLY_ALL:
        return True, ConfirmationMode.APPLY_ALL
    if answer is None:
        raise InputValidationError("An answer is required in confirm-each mode.")
    if answer is ItemAnswer.YES_TO_ALL:
        return True, ConfirmationMode.APPLY_ALL
    return answer is ItemAnswer.PROCEED, ConfirmationMode.CONFIRM_EACH


def prompt_for_mode(
    ask: Callable[[str], str] = input,
    out: Callable[[str], None] = print,
) -> ConfirmationMode:
    """Ask for the run mode until a valid selection is given."""
    while True:
        try:
            return parse_mode(ask(MODE_PROMPT))
        except InputValidationError as e:
            out(f"  ⚠  {e}. Enter A, C or Q.")


def describe_item(item: RemediationItem, index: int = 0, total: int = 0) -> list[str]:
    """Lines shown to the operator before an item is confirmed."""
    header = f"[{index}/{total}] " if total else ""
    lines = [
        f"  {header}{item.resource_name}",
        f"      Subscription:   {item.boundary_name} ({item.boundary_id})",
        f"      Resource type:  {item.resource_type}",
        f"      Resource group: {item.resource_group}",
        f"      Inconsistent:   {item.key} = {item.value!r}",
        f"      Action:         delete '{item.key}', set '{item.canonical_key}' = {item.value!r}",
    ]
    if item.has_canonical:
        existing = item.canonical_value
        lines.append(
            f"      ⚠  CONFLICT: '{item.canonical_key}' already exists"
            + (f" with value {existing!r}" if existing is not None else "")
            + " and will be overwritten"
        )
    return lines


class ConfirmationController:
    """Holds the run mode and applies decide() around operator prompts."""

    def __init__(
        self,
        mode: ConfirmationMode,
        ask: Callable[[str], str] = input,
        out: Callable[[str], None] = print,
    ):
        self.mode = mode
        self.initial_mode = mode
        self._ask = ask
        self._out = out
        self.prompts_shown = 0

    @property
    def aborted(self) -> bool:
        return self.mode is ConfirmationMode.ABORT

    def should_proceed(self, item: RemediationItem, index: int = 0, total: int = 0) -> bool:
        """Decide for one item, prompting only in CONFIRM_EACH."""
        if self.mode is not ConfirmationMode.CONFIRM_EACH:
            proceed, self.mode = decide(self.mode)
            return proceed

        for line in describe_item(item, index, total):
            self._out(line)

        while True:
            self.prompts_shown += 1
            try:
                answer = parse_answer(self._ask(ITEM_PROMPT))
                break
            except InputValidationError as e:
                self._out(f"  ⚠  {e}. Enter Y, N or A.")

        proceed, next_mode = decide(self.mode, answer)
        if next_mode is not self.mode:
            logger.info("Operator selected yes-to-all; remaining items will be applied without prompting")
        self.mode = next_mode
        return proceed
