"""
Base inventory source — abstract interface over a provider's resource inventory.

The core engine only talks to this contract, so it has no dependency on how
calls are transported. The active boundary is owned by the source object and
is the single piece of mutable context shared by the aggregator and executor.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..models import Boundary, Resource, TagOperation


class InventorySource(ABC):
    """
    Contract for enumerating boundaries/resources and mutating tags.

    set_active_boundary() raises AuthorizationError or NotFoundError.
    mutate_tag() raises MutationError (or NotFoundError if the resource vanished).
    """

    name: str = "base"

    @abstractmethod
    async def list_boundaries(self) -> list[Boundary]:
        raise NotImplementedError

    @abstractmethod
    async def set_active_boundary(self, boundary_id: str) -> None:
        raise NotImplementedError

    @property
    @abstractmethod
    def active_boundary(self) -> Optional[str]:
        """Id of the currently active boundary, or None before the first switch."""
        raise NotImplementedError

    @abstractmethod
    async def list_tagged_resources(self) -> list[Resource]:
        """Resources within the active boundary."""
        raise NotImplementedError

    @abstractmethod
    async def mutate_tag(
        self,
        resource_id: str,
        key: str,
        value: str,
        operation: TagOperation,
    ) -> None:
        raise NotImplementedError
