"""
Data models — boundaries, resources, findings, remediation items and run outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .errors import ConfigurationError


# ─── Variant dictionary ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class VariantDictionary:
    """
    Ordered, case-insensitive set of non-canonical spellings of one tag key.
    Loaded once per run and never mutated afterwards.
    """
    canonical_key: str
    variants: tuple[str, ...]

    def __post_init__(self):
        if not self.canonical_key or not self.canonical_key.strip():
            raise ConfigurationError("Canonical key must be a non-empty string.")

        canonical = self.canonical_key.casefold()
        seen: set[str] = set()
        cleaned: list[str] = []
        for variant in self.variants:
            if not variant or not variant.strip():
                raise ConfigurationError("Variant keys must be non-empty strings.")
            folded = variant.casefold()
            if folded == canonical:
                raise ConfigurationError(
                    f"Variant '{variant}' is the canonical key '{self.canonical_key}'."
                )
            if folded in seen:
                continue
            seen.add(folded)
            cleaned.append(variant)
        # frozen: bypass __setattr__ to store the normalised tuple
        object.__setattr__(self, "variants", tuple(cleaned))

    def __len__(self) -> int:
        return len(self.variants)

    def __iter__(self):
        return iter(self.variants)


# ─── Inventory ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Boundary:
    """A tenant/account scope (an Azure subscription)."""
    id: str
    name: str


@dataclass
class Resource:
    """A taggable resource as enumerated inside one boundary."""
    id: str
    name: str
    type: str = ""
    resource_group: str = ""
    location: str = ""
    tags: Optional[dict[str, str]] = None


# ─── Findings & remediation ─────────────────────────────────────────────────

@dataclass(frozen=True)
class Finding:
    """One variant key detected on one resource."""
    boundary: Boundary
    resource: Resource
    key: str                  # variant key in the resource's own casing
    value: str
    has_canonical: bool

    def to_row(self) -> dict:
        return {
            "BoundaryName": self.boundary.name,
            "ResourceName": self.resource.name,
            "ResourceType": self.resource.type,
            "ResourceGroup": self.resource.resource_group,
            "InconsistentTag": self.key,
            "TagValue": self.value,
            "HasCorrectTag": self.has_canonical,
        }


@dataclass
class RemediationItem:
    """A planned corrective action derived 1:1 from a Finding."""
    boundary_id: str
    boundary_name: str
    resource_id: str
    resource_name: str
    resource_type: str
    resource_group: str
    key: str
    value: str                 # snapshot taken at planning time
    canonical_key: str
    has_canonical: bool
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def canonical_value(self) -> Optional[str]:
        """Current canonical value in the snapshot, if any."""
        folded = self.canonical_key.casefold()
        for k, v in self.tags.items():
            if k.casefold() == folded:
                return v
        return None

    def to_dict(self) -> dict:
        return {
            "boundary_id": self.boundary_id,
            "boundary_name": self.boundary_name,
            "resource_id": self.resource_id,
            "resource_name": self.resource_name,
            "resource_type": self.resource_type,
            "resource_group": self.resource_group,
            "key": self.key,
            "value": self.value,
            "canonical_key": self.canonical_key,
            "has_canonical": self.has_canonical,
        }


class TagOperation(str, Enum):
    DELETE = "Delete"
    MERGE = "Merge"


class ItemStatus(str, Enum):
    REMEDIATED = "remediated"
    SKIPPED = "skipped"
    ERRORED = "errored"
    PLANNED = "planned"       # dry run only


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ItemResult:
    item: RemediationItem
    status: ItemStatus
    message: str = ""
    timestamp: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict:
        return {
            **self.item.to_dict(),
            "status": self.status.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }


@dataclass
class RunOutcome:
    """Tallies of a remediation run plus the ordered per-item results."""
    remediated: int = 0
    skipped: int = 0
    errored: int = 0
    planned: int = 0
    results: list[ItemResult] = field(default_factory=list)
    aborted: bool = False
    dry_run: bool = False

    def record(self, result: ItemResult) -> None:
        self.results.append(result)
        if result.status is ItemStatus.REMEDIATED:
            self.remediated += 1
        elif result.status is ItemStatus.SKIPPED:
            self.skipped += 1
        elif result.status is ItemStatus.ERRORED:
            self.errored += 1
        else:
            self.planned += 1

    @property
    def total(self) -> int:
        return self.remediated + self.skipped + self.errored + self.planned

    def counts(self) -> dict[str, int]:
        return {
            "remediated": self.remediated,
            "skipped": self.skipped,
            "errored": self.errored,
            "planned": self.planned,
        }

    def to_dict(self) -> dict:
        return {
            "summary": {**self.counts(), "total": self.total},
            "aborted": self.aborted,
            "dry_run": self.dry_run,
            "results": [r.to_dict() for r in self.results],
        }
