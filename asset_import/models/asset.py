from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""NormalizedAsset domain models (tagged union over asset type).

A spreadsheet row becomes exactly one of Computer | Printer after normalization.
Both share the NormalizedAsset base fields; type-specific attributes live on the
subclasses so field coverage is explicit instead of an open dict.
"""

__all__ = [
    "AssetType",
    "NormalizedAsset",
    "Computer",
    "Printer",
]


class AssetType(Enum):
    """Asset type selected for an import run.

    Values are the ``type`` field stored on asset documents.
    """
    COMPUTER = "computador"
    PRINTER = "impressora"

    @classmethod
    def parse(cls, value: str | AssetType) -> AssetType:
        if isinstance(value, AssetType):
            return value
        token = str(value).strip().lower()
        for member in cls:
            if token in (member.value, member.name.lower()):
                return member
        raise ValueError(f"unknown asset type: {value!r}")


@dataclass(frozen=True)
class NormalizedAsset:
    """Canonical record produced by the row normalizer.

    natural_key is never empty: rows without a usable serial get a synthesized
    key (see synthetic_key). unit_id holds the canonical unit identifier when
    unit_resolved is True, otherwise the raw token taken from the sheet.
    """
    natural_key: str  # serial
    declared_id: str | None  # tombamento
    unit_id: str | None
    unit_resolved: bool
    status: str | None
    sector: str | None
    floor: str | None = None
    room: str | None = None
    assignee: str | None = None
    brand: str | None = None
    model: str | None = None
    notes: str | None = None
    sheet_name: str = ""
    row_number: int = -1  # 1-based spreadsheet row, -1 when unknown
    synthetic_key: bool = False

    @property
    def asset_type(self) -> AssetType:  # pragma: no cover - overridden
        raise NotImplementedError


@dataclass(frozen=True)
class Computer(NormalizedAsset):
    hostname: str | None = None
    processor: str | None = None
    memory: str | None = None
    storage: str | None = None  # HD/SSD
    os: str | None = None
    antivirus: str | None = None
    mac_address: str | None = None
    service_tag: str | None = None

    @property
    def asset_type(self) -> AssetType:
        return AssetType.COMPUTER


@dataclass(frozen=True)
class Printer(NormalizedAsset):
    ip: str | None = None
    connectivity: str | None = None
    cartridge: str | None = None
    color: str | None = None
    duplex: str | None = None

    @property
    def asset_type(self) -> AssetType:
        return AssetType.PRINTER
