"""Named threshold profiles and the stores that persist them.

Exactly one profile is the default. It always exists and cannot be
deleted; deleting the active profile falls back to it.

Usage:
    store = JsonProfileStore("~/.config/gesture-tuner/profiles.json")
    profile = store.create_profile("Desk", thresholds)
    store.set_active_profile(profile.id)
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from gesture_tuner.errors import CannotDeleteDefault, ProfileError, ProfileNotFound
from gesture_tuner.thresholds import ThresholdProfile

logger = logging.getLogger("gesture_tuner.profiles")

DEFAULT_PROFILE_NAME = "Default"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _parse_time(value: Optional[str]) -> datetime:
    if not value:
        return _now()
    # Python < 3.11 fromisoformat does not accept a trailing Z
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass
class GestureProfile:
    """A named ThresholdProfile plus bookkeeping."""
    name: str
    thresholds: ThresholdProfile = field(default_factory=ThresholdProfile.defaults)
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)
    modified_at: datetime = field(default_factory=_now)
    is_default: bool = False

    @classmethod
    def default_profile(cls) -> GestureProfile:
        return cls(name=DEFAULT_PROFILE_NAME, is_default=True)

    def touch(self):
        self.modified_at = _now()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at.isoformat(),
            "modifiedAt": self.modified_at.isoformat(),
            "isDefault": self.is_default,
            "thresholds": self.thresholds.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> GestureProfile:
        return cls(
            id=str(data.get("id") or _new_id()),
            name=str(data["name"]),
            created_at=_parse_time(data.get("createdAt")),
            modified_at=_parse_time(data.get("modifiedAt")),
            is_default=bool(data.get("isDefault", False)),
            thresholds=ThresholdProfile.from_dict(data.get("thresholds", {})),
        )

    def __str__(self) -> str:
        marker = " (Default)" if self.is_default else ""
        return f"{self.name}{marker} - Modified: {self.modified_at:%Y-%m-%d %H:%M}"


class ProfileStore(ABC):
    """Profile CRUD, active-profile tracking, import and export.

    Subclasses decide where profiles live by implementing `_persist`.
    Returned profiles are copies; changes go through `update_profile`.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._profiles: list[GestureProfile] = []
        self._active_id: Optional[str] = None

    @abstractmethod
    def _persist(self):
        """Write the current profiles and active id to backing storage."""

    def _ensure_default(self) -> bool:
        """Guarantee a default profile and a valid active id. Returns True if changed."""
        changed = False
        if not any(p.is_default for p in self._profiles):
            self._profiles.append(GestureProfile.default_profile())
            changed = True
        if self._active_id is None or self._find(self._active_id) is None:
            self._active_id = self._default().id
            changed = True
        return changed

    def _find(self, profile_id: str) -> Optional[GestureProfile]:
        for p in self._profiles:
            if p.id == profile_id:
                return p
        return None

    def _require(self, profile_id: str) -> GestureProfile:
        profile = self._find(profile_id)
        if profile is None:
            raise ProfileNotFound(profile_id)
        return profile

    def _default(self) -> GestureProfile:
        return next(p for p in self._profiles if p.is_default)

    def _unique_name(self, name: str) -> str:
        taken = {p.name for p in self._profiles}
        unique = name
        counter = 2
        while unique in taken:
            unique = f"{name} ({counter})"
            counter += 1
        return unique

    # --- CRUD ---

    def create_profile(self, name: str, thresholds: ThresholdProfile) -> GestureProfile:
        """Add a new profile. Duplicate names get a " (2)", " (3)" ... suffix."""
        thresholds.validate()
        with self._lock:
            profile = GestureProfile(name=self._unique_name(name), thresholds=thresholds)
            self._profiles.append(profile)
            try:
                self._persist()
            except Exception:
                self._profiles.remove(profile)
                raise
        logger.info("Created profile '%s' (%s)", profile.name, profile.id)
        return dataclasses.replace(profile)

    def update_profile(self, profile: GestureProfile) -> GestureProfile:
        profile.thresholds.validate()
        with self._lock:
            index = self._profiles.index(self._require(profile.id))
            updated = dataclasses.replace(profile)
            updated.is_default = self._profiles[index].is_default
            updated.touch()
            self._profiles[index] = updated
            self._persist()
        return dataclasses.replace(updated)

    def delete_profile(self, profile_id: str):
        with self._lock:
            profile = self._require(profile_id)
            if profile.is_default:
                raise CannotDeleteDefault()
            self._profiles.remove(profile)
            if self._active_id == profile_id:
                self._active_id = self._default().id
                logger.info("Deleted active profile, switched to default")
            self._persist()
        logger.info("Deleted profile '%s'", profile.name)

    def get_profile(self, profile_id: str) -> Optional[GestureProfile]:
        with self._lock:
            profile = self._find(profile_id)
            return dataclasses.replace(profile) if profile else None

    def list_profiles(self) -> list[GestureProfile]:
        """Default first, then by name (case-insensitive)."""
        with self._lock:
            ordered = sorted(
                self._profiles, key=lambda p: (not p.is_default, p.name.casefold())
            )
            return [dataclasses.replace(p) for p in ordered]

    def find_by_name(self, name: str) -> Optional[GestureProfile]:
        with self._lock:
            for p in self._profiles:
                if p.name == name:
                    return dataclasses.replace(p)
        return None

    # --- Active profile ---

    def set_active_profile(self, profile_id: str):
        with self._lock:
            self._require(profile_id)
            previous, self._active_id = self._active_id, profile_id
            try:
                self._persist()
            except Exception:
                self._active_id = previous
                raise

    @property
    def active_profile(self) -> GestureProfile:
        with self._lock:
            profile = self._find(self._active_id) if self._active_id else None
            return dataclasses.replace(profile or self._default())

    @property
    def default_profile(self) -> GestureProfile:
        with self._lock:
            return dataclasses.replace(self._default())

    # --- Utilities ---

    def reset_profile_to_defaults(self, profile_id: str) -> GestureProfile:
        """Restore default thresholds, keeping name and metadata."""
        with self._lock:
            profile = dataclasses.replace(self._require(profile_id))
            profile.thresholds = ThresholdProfile.defaults()
            return self.update_profile(profile)

    def export_profile(self, profile_id: str) -> str:
        with self._lock:
            profile = self._require(profile_id)
            return json.dumps(profile.to_dict(), indent=2, sort_keys=True)

    def import_profile(self, text: str) -> GestureProfile:
        """Add a profile from exported JSON. It gets a new id and is never default."""
        try:
            data = json.loads(text)
            imported = GestureProfile.from_dict(data)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ProfileError(f"Invalid profile data: {e}") from e
        return self.create_profile(imported.name, imported.thresholds)


class InMemoryProfileStore(ProfileStore):
    """Keeps profiles for the lifetime of the process only."""

    def __init__(self):
        super().__init__()
        self._ensure_default()

    def _persist(self):
        pass


class JsonProfileStore(ProfileStore):
    """Profiles stored as one JSON document.

    The file holds ``{"version", "activeProfileId", "profiles"}`` and is
    rewritten atomically on every change. An unreadable file is logged and
    replaced by a fresh store holding only the default profile.
    """

    VERSION = 1

    def __init__(self, path: str | Path):
        super().__init__()
        self.path = Path(path).expanduser()
        self._load()
        if self._ensure_default():
            self._persist()

    def _load(self):
        if not self.path.exists():
            logger.debug("Profile file %s does not exist, starting fresh", self.path)
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
            self._profiles = [GestureProfile.from_dict(p) for p in data.get("profiles", [])]
            self._active_id = data.get("activeProfileId")
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("Failed to load profiles from %s: %s", self.path, e)
            self._profiles = []
            self._active_id = None

    def _persist(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": self.VERSION,
            "activeProfileId": self._active_id,
            "profiles": [p.to_dict() for p in self._profiles],
        }
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        os.replace(tmp, self.path)
