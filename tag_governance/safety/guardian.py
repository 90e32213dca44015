"""
Mutation Guardian — Gates every outbound ARM request.
In read-only (audit) mode all writes are blocked. In remediation mode the only
write allowed is a PATCH of a resource's tags/default sub-resource.
"""

from __future__ import annotations

import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger("tag_governance.safety")

# ─── HTTP Methods ────────────────────────────────────────────────────────────

READ_METHODS = {"GET", "HEAD", "OPTIONS"}
WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

# The tags "default" sub-resource is the only mutation target
TAG_PATCH_PATTERN = re.compile(
    r"/providers/Microsoft\.Resources/tags/default(\?|$)", re.IGNORECASE
)
ALLOWED_TAG_OPERATIONS = {"Delete", "Merge"}


class SafetyViolation(Exception):
    """Raised when a request falls outside the permitted operations."""
    pass


class MutationGuardian:
    """
    Validates every outbound HTTP request.
    Keeps a record of checks, permitted writes and violations for the run report.
    """

    def __init__(self, allow_tag_writes: bool = False):
        self.allow_tag_writes = allow_tag_writes
        self.violations: list[dict] = []
        self.checks_performed: int = 0
        self.writes_permitted: int = 0
        self.started_at: str = datetime.now(timezone.utc).isoformat()

    @property
    def mode(self) -> str:
        return "TAG-WRITE" if self.allow_tag_writes else "READ-ONLY"

    def validate_request(self, method: str, url: str, body: Optional[dict] = None) -> bool:
        """
        Validate a request.
        Returns True if permitted, raises SafetyViolation if not.
        """
        self.checks_performed += 1
        method_upper = method.upper()

        if method_upper in READ_METHODS:
            return True

        if not self.allow_tag_writes:
            self._record_violation(method_upper, url, "Write blocked in read-only mode")
            raise SafetyViolation(
                f"SAFETY VIOLATION: Write method blocked in read-only mode: {method_upper} {url}"
            )

        if method_upper != "PATCH" or not TAG_PATCH_PATTERN.search(url):
            self._record_violation(method_upper, url, "Only tag PATCH requests are permitted")
            raise SafetyViolation(
                f"SAFETY VIOLATION: Non-tag write blocked: {method_upper} {url}"
            )

        operation = (body or {}).get("operation")
        if operation not in ALLOWED_TAG_OPERATIONS:
            self._record_violation(method_upper, url, f"Tag operation {operation!r} not permitted")
            raise SafetyViolation(
                f"SAFETY VIOLATION: Tag operation {operation!r} blocked: {url}"
            )

        self.writes_permitted += 1
        return True

    def _record_violation(self, method: str, url: str, reason: str):
        violation = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": method,
            "url": url,
            "reason": reason,
        }
        self.violations.append(violation)
        logger.critical(f"SAFETY VIOLATION: {reason} — {method} {url}")

    def get_audit_record(self) -> dict:
        return {
            "mutation_guardian": {
                "mode": self.mode,
                "started_at": self.started_at,
                "checks_performed": self.checks_performed,
                "writes_permitted": self.writes_permitted,
                "violations_detected": len(self.violations),
                "violations": self.violations,
                "status": "CLEAN" if not self.violations else "VIOLATIONS_DETECTED",
            }
        }

    def print_banner(self):
        """Print the run-mode banner."""
        print("=" * 75)
        if self.allow_tag_writes:
            print("  REMEDIATION MODE -- TAGS MAY BE CHANGED")
            print("  * Only resource tag Delete/Merge operations are permitted")
            print("  * Every change is confirmed by mode selection and logged")
        else:
            print("  AUDIT MODE -- READ-ONLY, NO CHANGES WILL BE MADE")
            print("  * All API calls are GET/read-only")
            print("  * Mutation Guardian blocks writes at the HTTP layer")
        print("=" * 75)
        sys.stdout.flush()
