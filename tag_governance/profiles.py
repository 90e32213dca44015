"""
Tenant profiles — named ARM connection settings.

Stored as JSON in ~/.tag_governance/profiles.json:

    {
      "default_profile": "contoso-prod",
      "profiles": {
        "contoso-prod": {"tenant_id": "...", "client_id": "...", "subscriptions": ["Prod"]}
      }
    }

A profile's `subscriptions` list becomes the default subscription filter for
`audit` and `remediate` unless --subscription is given.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger("tag_governance.profiles")

DEFAULT_PROFILES_FILE = Path.home() / ".tag_governance" / "profiles.json"


@dataclass
class TenantProfile:
    name: str
    tenant_id: str
    client_id: str
    cert_path: str = "./base64.txt"
    tenant_display_name: str = ""
    subscriptions: list[str] = field(default_factory=list)   # empty = every visible subscription
    notes: str = ""

    def resolve_cert_path(self) -> str:
        """Absolute certificate path; `~` and relative paths resolved against the cwd."""
        p = Path(self.cert_path).expanduser()
        return str(p if p.is_absolute() else Path.cwd() / p)

    def to_json(self) -> dict:
        data = asdict(self)
        del data["name"]
        return data

    @classmethod
    def from_json(cls, name: str, data: dict) -> "TenantProfile":
        known = {f.name for f in fields(cls)} - {"name"}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs["subscriptions"] = list(kwargs.get("subscriptions") or [])
        # tenant_id / client_id are required; a missing one raises TypeError
        return cls(name=name, **kwargs)


@dataclass
class ProfileStore:
    profiles: dict[str, TenantProfile] = field(default_factory=dict)
    default_profile: str = ""
    path: Optional[Path] = None

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "ProfileStore":
        """Read the store; a missing or unreadable file yields an empty one."""
        path = Path(path) if path else DEFAULT_PROFILES_FILE
        if not path.exists():
            return cls(path=path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            profiles = {
                name: TenantProfile.from_json(name, pdata)
                for name, pdata in raw.get("profiles", {}).items()
            }
        except (json.JSONDecodeError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable profile store {path}: {e}")
            print(f"  ⚠  Failed to parse {path.name}: {e}")
            return cls(path=path)
        return cls(profiles=profiles, default_profile=raw.get("default_profile", ""), path=path)

    def save(self) -> None:
        path = self.path or DEFAULT_PROFILES_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "default_profile": self.default_profile,
            "profiles": {name: p.to_json() for name, p in self.profiles.items()},
        }
        path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        logger.debug(f"Saved {len(self.profiles)} profiles to {path}")

    def add(self, profile: TenantProfile, set_default: bool = False) -> None:
        """Insert or replace a profile. The first profile added becomes the default."""
        self.profiles[profile.name] = profile
        if set_default or not self.default_profile:
            self.default_profile = profile.name
        self.save()

    def remove(self, name: str) -> bool:
        if self.profiles.pop(name, None) is None:
            return False
        if self.default_profile == name:
            self.default_profile = next(iter(self.profiles), "")
        self.save()
        return True

    def get(self, name: str) -> Optional[TenantProfile]:
        """Case-insensitive lookup."""
        by_folded = {pname.casefold(): p for pname, p in self.profiles.items()}
        return by_folded.get(name.casefold())

    def get_default(self) -> Optional[TenantProfile]:
        if self.default_profile in self.profiles:
            return self.profiles[self.default_profile]
        return next(iter(self.profiles.values()), None)

    def set_default(self, name: str) -> bool:
        if name not in self.profiles:
            return False
        self.default_profile = name
        self.save()
        return True

    def list_profiles(self) -> list[TenantProfile]:
        return sorted(self.profiles.values(), key=lambda p: p.name)


def resolve_profile(name: Optional[str] = None, path: Optional[Path] = None) -> Optional[TenantProfile]:
    """The named profile, or the default one when no name is given."""
    store = ProfileStore.load(path)
    return store.get(name) if name else store.get_default()
