"""End-to-end audit and remediation passes over an in-memory inventory."""

import pytest

from tag_governance.audit.action_log import ActionLog
from tag_governance.engine import run_audit, run_remediation
from tag_governance.remediation.confirmation import MODE_PROMPT, ConfirmationMode

from conftest import DEV, PROD, make_resource
from fakes import FakeInventory, no_sleep


class Console:
    def __init__(self, answers=()):
        self.lines: list[str] = []
        self.prompts: list[str] = []
        self._answers = iter(answers)

    def out(self, line: str) -> None:
        self.lines.append(line)

    def ask(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return next(self._answers)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


@pytest.mark.asyncio
async def test_audit_reports_every_variant(inventory, tagging):
    console = Console()

    audit = await run_audit(inventory, tagging, out=console.out)

    assert [(f.resource.name, f.key) for f in audit.findings] == [
        ("vm-finance", "Dept"),
        ("vm-hr", "dept"),
        ("vm-hr", "DeptId"),
        ("vm-dev", "DEPARTMENT"),
    ]
    assert audit.boundaries_scanned == 2
    assert audit.resources_scanned == 5
    assert "Found 4 inconsistent tags on 3 resources" in console.text
    assert inventory.mutations() == []


@pytest.mark.asyncio
async def test_audit_of_a_clean_tenant(tagging):
    inventory = FakeInventory([(PROD, [make_resource(PROD, "vm-clean", {"DeptCode": "ENG"})])])
    console = Console()

    audit = await run_audit(inventory, tagging, out=console.out)

    assert audit.findings == []
    assert "No inconsistent tags found" in console.text


@pytest.mark.asyncio
async def test_denied_subscription_is_skipped_and_logged(tmp_path, inventory, tagging):
    inventory.denied.add(DEV.id)
    log = ActionLog(str(tmp_path / "actions.db"))
    log.start_run("run-1", "audit")
    console = Console()

    audit = await run_audit(inventory, tagging, action_log=log, run_id="run-1", out=console.out)

    assert audit.boundaries_scanned == 1
    assert len(audit.findings) == 3
    assert "Skipped subscription Dev" in console.text
    actions = [e["action"] for e in log.entries("run-1")]
    assert actions.count("boundary_skipped") == 1
    assert actions.count("finding") == 3


@pytest.mark.asyncio
async def test_subscription_filter(inventory, tagging):
    audit = await run_audit(inventory, tagging, boundary_filter=["dev"], out=Console().out)

    assert audit.boundaries_scanned == 1
    assert [f.boundary for f in audit.findings] == [DEV]


@pytest.mark.asyncio
async def test_apply_all_leaves_nothing_for_a_second_audit(inventory, tagging):
    console = Console()
    audit = await run_audit(inventory, tagging, out=console.out)

    outcome = await run_remediation(
        inventory, tagging, audit, mode=ConfirmationMode.APPLY_ALL,
        ask=console.ask, out=console.out, sleep=no_sleep,
    )

    assert outcome.counts() == {"remediated": 4, "skipped": 0, "errored": 0, "planned": 0}
    assert console.prompts == []
    assert "overwritten on 1 items" in console.text

    second = await run_audit(inventory, tagging, out=console.out)
    assert second.findings == []
    dev_vm = inventory.inventory[1][1][0]
    assert dev_vm.tags == {"env": "dev", "DeptCode": "R&D"}


@pytest.mark.asyncio
async def test_mode_is_prompted_when_not_given(inventory, tagging):
    # invalid selection, then confirm-each: yes, no, yes-to-all
    console = Console(["z", "c", "y", "n", "a"])
    audit = await run_audit(inventory, tagging, out=console.out)

    outcome = await run_remediation(inventory, tagging, audit, ask=console.ask, out=console.out, sleep=no_sleep)

    assert console.prompts[0] == MODE_PROMPT
    assert len(console.prompts) == 5
    assert outcome.counts() == {"remediated": 3, "skipped": 1, "errored": 0, "planned": 0}
    assert "Invalid mode selection" in console.text


@pytest.mark.asyncio
async def test_abort_changes_nothing(tmp_path, inventory, tagging):
    log = ActionLog(str(tmp_path / "actions.db"))
    log.start_run("run-1", "remediate")
    console = Console(["q"])
    audit = await run_audit(inventory, tagging, out=console.out)

    outcome = await run_remediation(
        inventory, tagging, audit, action_log=log, run_id="run-1",
        ask=console.ask, out=console.out, sleep=no_sleep,
    )

    assert outcome.aborted is True
    assert outcome.skipped == 4
    assert inventory.mutations() == []
    selected = [e for e in log.entries("run-1") if e["action"] == "mode_selected"]
    assert selected[0]["status"] == "abort"


@pytest.mark.asyncio
async def test_nothing_to_remediate(tagging):
    inventory = FakeInventory([(PROD, [make_resource(PROD, "vm-clean", {"DeptCode": "ENG"})])])
    console = Console()
    audit = await run_audit(inventory, tagging, out=console.out)

    outcome = await run_remediation(inventory, tagging, audit, ask=console.ask, out=console.out)

    assert outcome.total == 0
    assert console.prompts == []
    assert "Nothing to remediate." in console.text


@pytest.mark.asyncio
async def test_unreadable_subscriptions_are_not_reported_as_clean(inventory, tagging):
    inventory.denied.update({PROD.id, DEV.id})
    console = Console()

    audit = await run_audit(inventory, tagging, out=console.out)

    assert audit.findings == []
    assert audit.boundaries_skipped == 2
    assert audit.scan_failed is True
    assert audit.to_dict()["boundaries_skipped"] == 2
    assert "2 subscriptions skipped" in console.text
    assert "✅" not in console.text
    assert "All resources use" not in console.text


@pytest.mark.asyncio
async def test_partial_scan_is_not_a_failed_scan(inventory, tagging):
    inventory.denied.add(DEV.id)
    console = Console()

    audit = await run_audit(inventory, tagging, out=console.out)

    assert audit.scan_failed is False
    assert "1 subscriptions skipped" in console.text
