from __future__ import annotations

from dataclasses import dataclass, field

"""Caller permission context and organizational units.

Both are supplied by the RBAC boundary (see services.permissions) and consumed
read-only by the normalizer and the validator.
"""

__all__ = [
    "PermissionContext",
    "Unit",
]


@dataclass(frozen=True)
class Unit:
    """Organizational unit (hospital) assets belong to."""
    id: str  # document id
    code: str | None = None  # sigla, e.g. "HMR"
    name: str | None = None  # nome completo

    def matches(self, token: str) -> bool:
        needle = token.strip().casefold()
        if not needle:
            return False
        return any(c is not None and c.strip().casefold() == needle for c in (self.id, self.code, self.name))


@dataclass(frozen=True)
class PermissionContext:
    """Administrative flag plus the unit ids the caller may write to."""
    user: str | None = None
    is_admin: bool = False
    allowed_units: frozenset[str] = field(default_factory=frozenset)

    def can_write(self, unit_id: str | None) -> bool:
        if self.is_admin:
            return True
        return unit_id is not None and unit_id in self.allowed_units
