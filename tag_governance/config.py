"""
Configuration for the tag governance engine.

Holds the ARM connection constants, the default variant dictionary, remediation
tunables and output locations. A JSON file with `auth`, `tagging`, `output` and
`verbose` sections can override any of them (see EngineConfig.from_file).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError
from .models import VariantDictionary


# ─── Azure Resource Manager ─────────────────────────────────────────────────

ARM_BASE_URL = "https://management.azure.com"
ARM_SCOPE = "https://management.azure.com/.default"
ARM_DELEGATED_SCOPE = "https://management.azure.com/user_impersonation"
SUBSCRIPTIONS_API_VERSION = "2022-12-01"
RESOURCES_API_VERSION = "2021-04-01"
TAGS_API_VERSION = "2021-04-01"

MAX_RETRIES = 5                   # throttled / transient attempts per request
INITIAL_BACKOFF_SECONDS = 2.0
MAX_BACKOFF_SECONDS = 120.0
BACKOFF_MULTIPLIER = 2.0
MAX_PAGES_PER_ENDPOINT = 10000    # nextLink loop cap


# ─── Credentials ────────────────────────────────────────────────────────────

AUTH_MODES = ("certificate", "delegated")


@dataclass
class CertificateAuth:
    """App-only sign-in with a base64-encoded PFX."""
    tenant_id: str
    client_id: str
    certificate_path: str = "./base64.txt"
    certificate_password: str = ""    # prompted (or read from the environment) when empty
    thumbprint: str = ""


@dataclass
class DelegatedAuth:
    """Device-code sign-in as the operator."""
    tenant_id: str
    client_id: str
    scopes: list[str] = field(default_factory=lambda: [ARM_DELEGATED_SCOPE])


@dataclass
class AuthConfig:
    mode: str = "certificate"
    certificate: Optional[CertificateAuth] = None
    delegated: Optional[DelegatedAuth] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AuthConfig":
        mode = data.get("mode", "certificate")
        if mode not in AUTH_MODES:
            raise ConfigurationError(f"Unknown auth mode '{mode}'. Expected one of: {', '.join(AUTH_MODES)}")
        auth = cls(mode=mode)
        try:
            if "certificate" in data:
                auth.certificate = CertificateAuth(**_known(CertificateAuth, data["certificate"]))
            if "delegated" in data:
                auth.delegated = DelegatedAuth(**_known(DelegatedAuth, data["delegated"]))
        except TypeError as e:
            raise ConfigurationError(f"Incomplete auth section: {e}")
        return auth


def _known(cls, data: dict) -> dict:
    """Drop keys the dataclass does not declare."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


# ─── Tagging ────────────────────────────────────────────────────────────────

DEFAULT_CANONICAL_KEY = "DeptCode"

DEFAULT_VARIANTS = [
    "Dept",
    "Department",
    "DeptId",
    "DepartmentId",
    "DeptCd",
    "DepartmentCode",
    "Dept_Code",
    "Dept-Code",
    "DeptNo",
    "DeptNumber",
    "Department_Code",
    "CostCenterDept",
]

DEFAULT_SETTLE_SECONDS = 10.0     # pause between the delete and the merge of one item

CONFLICT_POLICIES = ("overwrite", "skip")


@dataclass
class TaggingConfig:
    canonical_key: str = DEFAULT_CANONICAL_KEY
    variants: list[str] = field(default_factory=lambda: list(DEFAULT_VARIANTS))
    settle_seconds: float = DEFAULT_SETTLE_SECONDS
    conflict_policy: str = "overwrite"
    boundaries: list[str] = field(default_factory=list)  # subscription ids or names; empty = all

    def validate(self):
        if not isinstance(self.variants, (list, tuple)) or not all(isinstance(v, str) for v in self.variants):
            raise ConfigurationError("variants must be a list of tag key strings.")
        if not isinstance(self.canonical_key, str):
            raise ConfigurationError("canonical_key must be a string.")
        if self.conflict_policy not in CONFLICT_POLICIES:
            raise ConfigurationError(
                f"Unknown conflict policy '{self.conflict_policy}'. "
                f"Expected one of: {', '.join(CONFLICT_POLICIES)}"
            )
        if self.settle_seconds < 0:
            raise ConfigurationError("settle_seconds must not be negative.")

    def dictionary(self) -> VariantDictionary:
        """The immutable variant dictionary for this run."""
        return VariantDictionary(self.canonical_key, tuple(self.variants))


# ─── Output ─────────────────────────────────────────────────────────────────

@dataclass
class OutputConfig:
    """
    Layout under base_dir:
        csv/      findings and per-item results
        reports/  JSON and Markdown run reports
        audit/    action_log.db and tag_governance.log
    """
    base_dir: str = ""
    timestamp: str = ""

    def __post_init__(self):
        self.base_dir = self.base_dir or os.path.join(os.getcwd(), "tag_governance_output")
        self.timestamp = self.timestamp or datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    @property
    def scan_dir(self) -> Path:
        return Path(self.base_dir)

    @property
    def csv_dir(self) -> Path:
        return self.scan_dir / "csv"

    @property
    def reports_dir(self) -> Path:
        return self.scan_dir / "reports"

    @property
    def audit_dir(self) -> Path:
        return self.scan_dir / "audit"

    def create_directories(self):
        for sub in (self.csv_dir, self.reports_dir, self.audit_dir):
            sub.mkdir(parents=True, exist_ok=True)


# ─── Engine ─────────────────────────────────────────────────────────────────

@dataclass
class EngineConfig:
    auth: AuthConfig = field(default_factory=AuthConfig)
    tagging: TaggingConfig = field(default_factory=TaggingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    verbose: bool = False

    @classmethod
    def from_file(cls, path) -> "EngineConfig":
        """
        Load a JSON config file. Unknown keys are ignored; a bad conflict
        policy or variant dictionary raises ConfigurationError here rather
        than mid-scan.
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}")

        config = cls(
            auth=AuthConfig.from_dict(data.get("auth", {})),
            tagging=TaggingConfig(**_known(TaggingConfig, data.get("tagging", {}))),
            output=OutputConfig(**_known(OutputConfig, data.get("output", {}))),
            verbose=bool(data.get("verbose", False)),
        )
        config.tagging.validate()
        config.tagging.dictionary()
        return config
