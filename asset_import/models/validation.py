from __future__ import annotations

from dataclasses import dataclass, field

from .asset import NormalizedAsset
from .vocabulary import DiscoveredTerms

__all__ = [
    "ValidationOutcome",
    "ValidationResult",
]


@dataclass(frozen=True)
class ValidationOutcome:
    """Blocking errors for one row. An empty tuple means the row is importable."""
    asset: NormalizedAsset
    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def describe(self) -> str:
        return "; ".join(self.errors)


@dataclass
class ValidationResult:
    """Importable rows, rejected outcomes and the discovery side-channel."""
    importable: list[NormalizedAsset] = field(default_factory=list)
    rejected: list[ValidationOutcome] = field(default_factory=list)
    discovered: DiscoveredTerms = field(default_factory=DiscoveredTerms)

    @property
    def has_blocking_errors(self) -> bool:
        return bool(self.rejected)

    def error_messages(self) -> list[str]:
        """Flat, human readable list for the wizard's error box."""
        messages: list[str] = []
        for outcome in self.rejected:
            a = outcome.asset
            where = f"{a.sheet_name}!{a.row_number}" if a.sheet_name else f"row {a.row_number}"
            for err in outcome.errors:
                messages.append(f"{where} ({a.natural_key}): {err}")
        return messages
