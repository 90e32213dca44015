"""Shared fixtures: a two-subscription inventory with a mix of tag spellings."""

from __future__ import annotations

import pytest

from tag_governance.config import TaggingConfig
from tag_governance.models import Boundary, Resource, VariantDictionary

from fakes import FakeInventory

PROD = Boundary(id="00000000-0000-0000-0000-000000000001", name="Prod")
DEV = Boundary(id="00000000-0000-0000-0000-000000000002", name="Dev")


def rid(boundary: Boundary, group: str, name: str) -> str:
    return (
        f"/subscriptions/{boundary.id}/resourceGroups/{group}"
        f"/providers/Microsoft.Compute/virtualMachines/{name}"
    )


def make_resource(boundary: Boundary, name: str, tags, group: str = "rg-app") -> Resource:
    return Resource(
        id=rid(boundary, group, name),
        name=name,
        type="Microsoft.Compute/virtualMachines",
        resource_group=group,
        location="westeurope",
        tags=tags,
    )


@pytest.fixture
def dictionary() -> VariantDictionary:
    return VariantDictionary("DeptCode", ("Dept", "Department", "DeptId"))


@pytest.fixture
def tagging() -> TaggingConfig:
    return TaggingConfig(
        canonical_key="DeptCode",
        variants=["Dept", "Department", "DeptId"],
        settle_seconds=0,
    )


@pytest.fixture
def inventory() -> FakeInventory:
    return FakeInventory([
        (PROD, [
            make_resource(PROD, "vm-finance", {"Dept": "Finance", "DeptCode": "FIN001"}),
            make_resource(PROD, "vm-clean", {"DeptCode": "ENG"}),
            make_resource(PROD, "vm-untagged", None),
            make_resource(PROD, "vm-hr", {"DeptId": "HR02", "dept": "HR"}, group="rg-hr"),
        ]),
        (DEV, [
            make_resource(DEV, "vm-dev", {"DEPARTMENT": "R&D", "env": "dev"}),
        ]),
    ])
