"""Explicit clock and actor for one import."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Mapping

SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class ImportContext:
    """
    ``now`` and the acting user are passed into every component instead of
    being read from ambient helpers, so age checks and audit fields are
    deterministic under test.
    """

    now: datetime
    user_id: int | None = None
    user_name: str | None = None
    zero_policies: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def current(cls, **kwargs: Any) -> "ImportContext":
        return cls(now=datetime.now(timezone.utc), **kwargs)

    @property
    def today(self) -> date:
        return self.now.date()

    @property
    def actor(self) -> str:
        return self.user_name or SYSTEM_ACTOR

    def to_dict(self) -> dict[str, Any]:
        return {
            "now": self.now.isoformat(),
            "user_id": self.user_id,
            "user_name": self.user_name,
            "zero_policies": dict(self.zero_policies),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ImportContext":
        return cls(
            now=datetime.fromisoformat(payload["now"]),
            user_id=payload.get("user_id"),
            user_name=payload.get("user_name"),
            zero_policies=dict(payload.get("zero_policies") or {}),
        )
