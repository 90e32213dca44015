"""Tests for the confirmation controller state machine."""

import pytest

from tag_governance.errors import InputValidationError
from tag_governance.models import RemediationItem
from tag_governance.remediation.confirmation import (
    ConfirmationController,
    ConfirmationMode,
    ItemAnswer,
    decide,
    describe_item,
    parse_answer,
    parse_mode,
    prompt_for_mode,
)


def _item(n: int = 1, has_canonical: bool = False) -> RemediationItem:
    tags = {"Dept": f"D{n}"}
    if has_canonical:
        tags["DeptCode"] = "OLD"
    return RemediationItem(
        boundary_id="sub-1",
        boundary_name="Prod",
        resource_id=f"/subscriptions/sub-1/resourceGroups/rg/providers/X/y/vm{n}",
        resource_name=f"vm{n}",
        resource_type="X/y",
        resource_group="rg",
        key="Dept",
        value=f"D{n}",
        canonical_key="DeptCode",
        has_canonical=has_canonical,
        tags=tags,
    )


class Answers:
    """Feeds scripted answers to the controller and records prompts."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        return self.answers.pop(0)


class TestParsing:
    @pytest.mark.parametrize(
        "text, mode",
        [
            ("A", ConfirmationMode.APPLY_ALL),
            ("apply-all", ConfirmationMode.APPLY_ALL),
            ("apply_all", ConfirmationMode.APPLY_ALL),
            (" c ", ConfirmationMode.CONFIRM_EACH),
            ("confirm-each", ConfirmationMode.CONFIRM_EACH),
            ("Q", ConfirmationMode.ABORT),
            ("abort", ConfirmationMode.ABORT),
        ],
    )
    def test_parse_mode(self, text, mode):
        assert parse_mode(text) is mode

    @pytest.mark.parametrize("text", ["", "yes", "maybe", "z"])
    def test_invalid_mode_is_rejected(self, text):
        with pytest.raises(InputValidationError):
            parse_mode(text)

    @pytest.mark.parametrize(
        "text, answer",
        [
            ("y", ItemAnswer.PROCEED),
            ("YES", ItemAnswer.PROCEED),
            ("n", ItemAnswer.SKIP),
            ("skip", ItemAnswer.SKIP),
            ("a", ItemAnswer.YES_TO_ALL),
            ("yes-to-all", ItemAnswer.YES_TO_ALL),
        ],
    )
    def test_parse_answer(self, text, answer):
        assert parse_answer(text) is answer

    def test_invalid_answer_is_rejected(self):
        with pytest.raises(InputValidationError):
            parse_answer("")


class TestDecide:
    def test_apply_all_always_proceeds(self):
        assert decide(ConfirmationMode.APPLY_ALL) == (True, ConfirmationMode.APPLY_ALL)
        assert decide(ConfirmationMode.APPLY_ALL, ItemAnswer.SKIP) == (True, ConfirmationMode.APPLY_ALL)

    def test_abort_never_proceeds(self):
        assert decide(ConfirmationMode.ABORT, ItemAnswer.PROCEED) == (False, ConfirmationMode.ABORT)

    def test_confirm_each_transitions(self):
        assert decide(ConfirmationMode.CONFIRM_EACH, ItemAnswer.PROCEED) == (True, ConfirmationMode.CONFIRM_EACH)
        assert decide(ConfirmationMode.CONFIRM_EACH, ItemAnswer.SKIP) == (False, ConfirmationMode.CONFIRM_EACH)
        assert decide(ConfirmationMode.CONFIRM_EACH, ItemAnswer.YES_TO_ALL) == (True, ConfirmationMode.APPLY_ALL)

    def test_confirm_each_requires_an_answer(self):
        with pytest.raises(InputValidationError):
            decide(ConfirmationMode.CONFIRM_EACH)


class TestController:
    def test_yes_to_all_bypasses_remaining_prompts(self):
        ask = Answers("y", "n", "a")
        controller = ConfirmationController(ConfirmationMode.CONFIRM_EACH, ask=ask, out=lambda s: None)

        decisions = [controller.should_proceed(_item(n)) for n in range(1, 7)]

        assert decisions == [True, False, True, True, True, True]
        assert len(ask.prompts) == 3
        assert controller.mode is ConfirmationMode.APPLY_ALL
        assert controller.initial_mode is ConfirmationMode.CONFIRM_EACH

    def test_invalid_answer_is_reprompted(self):
        ask = Answers("", "perhaps", "n")
        out = []
        controller = ConfirmationController(ConfirmationMode.CONFIRM_EACH, ask=ask, out=out.append)

        assert controller.should_proceed(_item()) is False
        assert len(ask.prompts) == 3
        assert sum("Invalid answer" in line for line in out) == 2

    def test_apply_all_never_prompts(self):
        ask = Answers()
        controller = ConfirmationController(ConfirmationMode.APPLY_ALL, ask=ask, out=lambda s: None)

        assert all(controller.should_proceed(_item(n)) for n in range(3))
        assert ask.prompts == []

    def test_abort_mode(self):
        controller = ConfirmationController(ConfirmationMode.ABORT, ask=Answers(), out=lambda s: None)

        assert controller.aborted
        assert controller.should_proceed(_item()) is False

    def test_item_context_is_shown_before_prompt(self):
        out = []
        controller = ConfirmationController(ConfirmationMode.CONFIRM_EACH, ask=Answers("y"), out=out.append)

        controller.should_proceed(_item(has_canonical=True), index=2, total=5)

        text = "\n".join(out)
        assert "[2/5] vm1" in text
        assert "Prod (sub-1)" in text
        assert "Dept = 'D1'" in text
        assert "CONFLICT" in text and "'OLD'" in text


def test_describe_item_without_conflict_has_no_warning():
    assert not any("CONFLICT" in line for line in describe_item(_item()))


def test_prompt_for_mode_reprompts_until_valid():
    ask = Answers("", "later", "c")
    out = []

    assert prompt_for_mode(ask, out.append) is ConfirmationMode.CONFIRM_EACH
    assert len(ask.prompts) == 3
    assert len(out) == 2
