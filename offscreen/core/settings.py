from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any

from offscreen.core.config import DEFAULT_REMINDER_FREQUENCY_SECONDS, REMINDER_FREQUENCY_OPTIONS
from offscreen.core.errors import CorruptStateError


class Tier(str, Enum):
    FREE = "free"
    PRO = "pro"


# Stored field name -> attribute name.
_PAYLOAD_FIELDS = {
    "notificationsEnabled": "notifications_enabled",
    "funnyMode": "funny_mode",
    "timerLockEnabled": "timer_lock_enabled",
    "smartNotificationsEnabled": "smart_notifications_enabled",
    "premiumTier": "tier",
    "reminderFrequency": "reminder_frequency_seconds",
}


@dataclass(frozen=True)
class Settings:
    notifications_enabled: bool = False
    funny_mode: bool = True
    timer_lock_enabled: bool = False
    smart_notifications_enabled: bool = False
    tier: Tier = Tier.FREE
    reminder_frequency_seconds: int = DEFAULT_REMINDER_FREQUENCY_SECONDS

    @property
    def lock_active(self) -> bool:
        return self.timer_lock_enabled and self.tier is Tier.PRO

    @property
    def smart_active(self) -> bool:
        return self.smart_notifications_enabled and self.tier is Tier.PRO

    def with_changes(self, **changes: Any) -> Settings:
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise KeyError(f"Unknown settings: {', '.join(sorted(unknown))}")
        if "tier" in changes:
            changes["tier"] = Tier(changes["tier"])
        frequency = changes.get("reminder_frequency_seconds")
        if frequency is not None and frequency not in REMINDER_FREQUENCY_OPTIONS:
            raise ValueError(f"Unsupported reminder frequency: {frequency}")
        return replace(self, **changes)

    def to_json(self) -> str:
        values = asdict(self)
        values["tier"] = self.tier.value
        return json.dumps({key: values[attr] for key, attr in _PAYLOAD_FIELDS.items()})

    @classmethod
    def from_json(cls, raw: str) -> Settings:
        """Parse stored settings; fields with the wrong type keep their defaults."""
        try:
            payload = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as exc:
            raise CorruptStateError(f"Settings are not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise CorruptStateError("Settings payload is not an object")

        defaults = cls()
        values: dict[str, Any] = {}
        for key, attr in _PAYLOAD_FIELDS.items():
            if attr == "tier" or attr == "reminder_frequency_seconds":
                continue
            value = payload.get(key)
            values[attr] = value if isinstance(value, bool) else getattr(defaults, attr)

        tier = payload.get("premiumTier")
        valid_tier = isinstance(tier, str) and tier in {t.value for t in Tier}
        values["tier"] = Tier(tier) if valid_tier else defaults.tier

        frequency = payload.get("reminderFrequency")
        valid_frequency = isinstance(frequency, int) and not isinstance(frequency, bool)
        if valid_frequency and frequency in REMINDER_FREQUENCY_OPTIONS:
            values["reminder_frequency_seconds"] = frequency
        else:
            values["reminder_frequency_seconds"] = defaults.reminder_frequency_seconds
        return cls(**values)
