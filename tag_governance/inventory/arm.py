"""
Azure Resource Manager inventory source.
Subscriptions are boundaries; tags are mutated through the tags/default PATCH operation.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..arm.client import ArmAPIError, ArmClient
from ..config import RESOURCES_API_VERSION, SUBSCRIPTIONS_API_VERSION, TAGS_API_VERSION
from ..errors import (
    AuthorizationError,
    InventoryError,
    MutationError,
    NotFoundError,
    TagGovernanceError,
)
from ..models import Boundary, Resource, TagOperation
from .base import InventorySource

logger = logging.getLogger("tag_governance.inventory.arm")

# Subscriptions in these states reject resource operations
INACTIVE_STATES = {"Disabled", "Deleted"}


def resource_group_from_id(resource_id: str) -> str:
    """Extract the resource group name from an ARM resource id."""
    parts = resource_id.strip("/").split("/")
    for i, part in enumerate(parts[:-1]):
        if part.lower() == "resourcegroups":
            return parts[i + 1]
    return ""


def _lookup_error(e: Exception, what: str) -> TagGovernanceError:
    if isinstance(e, ArmAPIError):
        if e.status_code in (401, 403):
            return AuthorizationError(f"Access denied to {what}: {e}")
        if e.status_code == 404:
            return NotFoundError(f"{what} not found: {e}")
    return InventoryError(f"Failed to read {what}: {type(e).__name__}: {e}")


class ArmInventory(InventorySource):
    """Inventory source backed by the ARM REST API."""

    name = "azure-resource-manager"

    def __init__(self, client: ArmClient):
        self.client = client
        self._active: Optional[str] = None

    @property
    def active_boundary(self) -> Optional[str]:
        return self._active

    async def list_boundaries(self) -> list[Boundary]:
        try:
            subs = await self.client.get_all_pages(
                "subscriptions", params={"api-version": SUBSCRIPTIONS_API_VERSION}
            )
        except (ArmAPIError, httpx.HTTPError) as e:
            raise _lookup_error(e, "subscriptions") from e
        boundaries = []
        for s in subs:
            if s.get("state") in INACTIVE_STATES:
                logger.info(f"Skipping subscription {s.get('displayName')} (state {s.get('state')})")
                continue
            boundaries.append(Boundary(id=s["subscriptionId"], name=s.get("displayName", s["subscriptionId"])))
        return boundaries

    async def set_active_boundary(self, boundary_id: str) -> None:
        try:
            await self.client.get(
                f"subscriptions/{boundary_id}",
                params={"api-version": SUBSCRIPTIONS_API_VERSION},
            )
        except (ArmAPIError, httpx.HTTPError) as e:
            raise _lookup_error(e, f"subscription {boundary_id}") from e
        self._active = boundary_id
        logger.debug(f"Active subscription set to {boundary_id}")

    async def list_tagged_resources(self) -> list[Resource]:
        if not self._active:
            raise NotFoundError("No active subscription selected.")
        try:
            raw = await self.client.get_all_pages(
                f"subscriptions/{self._active}/resources",
                params={"api-version": RESOURCES_API_VERSION},
            )
        except (ArmAPIError, httpx.HTTPError) as e:
            raise _lookup_error(e, f"resources of subscription {self._active}") from e

        return [
            Resource(
                id=r["id"],
                name=r.get("name", ""),
                type=r.get("type", ""),
                resource_group=resource_group_from_id(r["id"]),
                location=r.get("location", ""),
                tags=r.get("tags"),
            )
            for r in raw
        ]

    async def mutate_tag(
        self,
        resource_id: str,
        key: str,
        value: str,
        operation: TagOperation,
    ) -> None:
        body = {
            "operation": operation.value,
            "properties": {"tags": {key: value}},
        }
        try:
            await self.client.patch(
                f"{resource_id.rstrip('/')}/providers/Microsoft.Resources/tags/default",
                body,
                params={"api-version": TAGS_API_VERSION},
            )
        except ArmAPIError as e:
            if e.status_code == 404:
                raise NotFoundError(f"Resource {resource_id} no longer exists: {e}") from e
            raise MutationError(f"{operation.value} of tag '{key}' failed: {e}") from e
        except httpx.HTTPError as e:
            raise MutationError(f"{operation.value} of tag '{key}' failed: {type(e).__name__}: {e}") from e
