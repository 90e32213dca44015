"""Tests for the finding aggregator."""

import pytest

from tag_governance.analyzers.aggregator import collect_findings

from conftest import DEV, PROD


@pytest.mark.asyncio
async def test_findings_in_boundary_resource_dictionary_order(inventory, dictionary):
    audit = await collect_findings(inventory, dictionary)

    assert [(f.boundary.name, f.resource.name, f.key, f.value) for f in audit.findings] == [
        ("Prod", "vm-finance", "Dept", "Finance"),
        ("Prod", "vm-hr", "dept", "HR"),
        ("Prod", "vm-hr", "DeptId", "HR02"),
        ("Dev", "vm-dev", "DEPARTMENT", "R&D"),
    ]
    assert [f.has_canonical for f in audit.findings] == [True, False, False, False]


@pytest.mark.asyncio
async def test_scan_statistics(inventory, dictionary):
    audit = await collect_findings(inventory, dictionary)

    assert audit.boundaries_scanned == 2
    assert audit.resources_scanned == 5
    assert audit.resources_with_tags == 4
    assert audit.affected_resources == 3
    assert audit.boundary_errors == []


@pytest.mark.asyncio
async def test_findings_never_use_the_canonical_key(inventory, dictionary):
    audit = await collect_findings(inventory, dictionary)

    assert all(f.key.casefold() != "deptcode" for f in audit.findings)


@pytest.mark.asyncio
async def test_audit_is_idempotent(inventory, dictionary):
    first = await collect_findings(inventory, dictionary)
    second = await collect_findings(inventory, dictionary)

    assert first.findings == second.findings


@pytest.mark.asyncio
async def test_inaccessible_boundary_is_skipped(inventory, dictionary):
    inventory.denied.add(PROD.id)

    audit = await collect_findings(inventory, dictionary)

    assert [f.resource.name for f in audit.findings] == ["vm-dev"]
    assert audit.boundaries_scanned == 1
    assert audit.boundary_errors[0]["boundary_id"] == PROD.id
    assert audit.boundary_errors[0]["error"] == "AuthorizationError"


@pytest.mark.asyncio
async def test_boundary_filter_by_name_or_id(inventory, dictionary):
    by_name = await collect_findings(inventory, dictionary, ["dev"])
    by_id = await collect_findings(inventory, dictionary, [PROD.id])

    assert {f.boundary.id for f in by_name.findings} == {DEV.id}
    assert {f.boundary.id for f in by_id.findings} == {PROD.id}
    assert ("switch", PROD.id) in inventory.calls
