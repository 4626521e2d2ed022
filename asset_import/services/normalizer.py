from __future__ import annotations

import logging
import random
import re
import unicodedata
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..models.asset import AssetType, Computer, NormalizedAsset, Printer
from ..models.config_models import ImportRules
from ..models.permission import Unit
from ..models.row_data import RawRow

"""Row normalizer.

Turns heterogeneous spreadsheet rows into Computer / Printer records:
- header keys are folded (case, accents, spacing) and known variants aliased
- the unit comes from the unit column, falling back to the sheet name
- placeholder identifiers ("n/a", "s/n", vendor names, ...) are discarded
- status synonyms are mapped onto the canonical labels
- rows without a usable serial get a synthesized natural key
"""

logger = logging.getLogger(__name__)

__all__ = [
    "HEADER_ALIASES",
    "NormalizationResult",
    "SyntheticKeyGenerator",
    "canonical_header",
    "clean_identifier",
    "clean_text",
    "is_synthetic_key",
    "normalize_row",
    "normalize_rows",
    "normalize_status",
    "resolve_unit",
]

# folded header -> canonical field name
HEADER_ALIASES: dict[str, str] = {
    "unidade": "unit",
    "hospital": "unit",
    "sigla": "unit",
    "numero_de_serie": "serial",
    "n_serie": "serial",
    "num_serie": "serial",
    "no_serie": "serial",
    "no_de_serie": "serial",
    "n_de_serie": "serial",
    "patrimonio": "tombamento",
    "andar": "pavimento",
    "colaborador": "funcionario",
    "usuario": "funcionario",
    "responsavel": "funcionario",
    "obs": "observacao",
    "observacoes": "observacao",
    "fabricante": "marca",
    "cpu": "processador",
    "ram": "memoria",
    "memoria_ram": "memoria",
    "hd": "hd_ssd",
    "ssd": "hd_ssd",
    "hdssd": "hd_ssd",
    "hd_ssd_": "hd_ssd",
    "armazenamento": "hd_ssd",
    "sistema_operacional": "so",
    "s_o": "so",
    "mac_address": "mac",
    "endereco_mac": "mac",
    "servicetag": "service_tag",
    "endereco_ip": "ip",
    "conexao": "conectividade",
    "toner": "cartucho",
    "colorida": "colorido",
    "duplex": "frente_verso",
    "frenteverso": "frente_verso",
}

_NON_ALNUM = re.compile(r"[^0-9a-z]+")
_HAS_ALNUM = re.compile(r"[0-9A-Za-zÀ-ÿ]")


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def canonical_header(header: str) -> str:
    """Fold a header to its canonical field name.

    >>> canonical_header(" HD / SSD ")
    'hd_ssd'
    >>> canonical_header("Observação")
    'observacao'
    """
    folded = _NON_ALNUM.sub("_", _strip_accents(str(header)).casefold()).strip("_")
    return HEADER_ALIASES.get(folded, folded)


def clean_text(value: Any) -> str | None:
    """Trim a cell value into text. Integral floats lose their '.0'."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "Sim" if value else "Não"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = " ".join(str(value).replace("\xa0", " ").split())
    if text.endswith(".0") and text[:-2].isdigit():
        text = text[:-2]
    return text or None


def clean_identifier(value: Any, placeholders: Iterable[str]) -> str | None:
    """Return the identifier, or None when it is a placeholder / garbage token."""
    text = clean_text(value)
    if text is None:
        return None
    if not _HAS_ALNUM.search(text):
        return None
    folded = text.casefold()
    if folded in placeholders or _strip_accents(folded) in placeholders:
        return None
    return text


def normalize_status(value: Any, synonyms: Mapping[str, str], canonical: Sequence[str] = ()) -> str | None:
    """Map known synonyms and case variants onto the canonical label.

    Unknown values are passed through untouched so validation can report them.
    """
    text = clean_text(value)
    if text is None:
        return None
    folded = text.casefold()
    for label in canonical:
        if label.casefold() == folded:
            return label
    mapped = synonyms.get(folded) or synonyms.get(_strip_accents(folded))
    return mapped if mapped is not None else text


def resolve_unit(declared: Any, sheet_name: str, units: Sequence[Unit]) -> tuple[str | None, bool]:
    """Resolve the unit from the unit column, falling back to the sheet name.

    Returns (unit_id, resolved). When nothing matches the raw token is returned
    with resolved=False; permission validation rejects it later.
    """
    declared_text = clean_text(declared)
    candidates = [c for c in (declared_text, clean_text(sheet_name)) if c]
    for token in candidates:
        for unit in units:
            if unit.matches(token):
                return unit.id, True
    if declared_text:
        return declared_text, False
    return (candidates[0], False) if candidates else (None, False)


def is_synthetic_key(key: str, prefix: str) -> bool:
    return key.startswith(f"{prefix}-")


class SyntheticKeyGenerator:
    """Issues placeholder natural keys: <prefix>-<0000 sequence>-<4 random digits>.

    Keys are unique within one generator; they are not stable across imports.
    """

    def __init__(self, prefix: str, rng: random.Random | None = None) -> None:
        self.prefix = prefix
        self._rng = rng or random.Random()
        self._sequence = 0
        self._issued: set[str] = set()

    def next_key(self) -> str:
        while True:
            self._sequence += 1
            suffix = self._rng.randint(0, 9999)
            key = f"{self.prefix}-{self._sequence:04d}-{suffix:04d}"
            if key not in self._issued:
                self._issued.add(key)
                return key

    @property
    def issued(self) -> int:
        return len(self._issued)


def _fields(raw: RawRow) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for header, value in raw.values.items():
        name = canonical_header(header)
        # primeira coluna não vazia vence quando dois cabeçalhos colapsam no mesmo campo
        if out.get(name) is None:
            out[name] = value
    return out


def normalize_row(
    raw: RawRow,
    asset_type: AssetType,
    units: Sequence[Unit],
    rules: ImportRules,
    keygen: SyntheticKeyGenerator,
) -> NormalizedAsset:
    f = _fields(raw)
    placeholders = rules.placeholder_identifiers

    serial = clean_identifier(f.get("serial"), placeholders)
    synthetic = serial is None
    natural_key = keygen.next_key() if synthetic else serial

    unit_id, resolved = resolve_unit(f.get("unit"), raw.sheet_name, units)
    base: dict[str, Any] = dict(
        natural_key=natural_key,
        declared_id=clean_identifier(f.get("tombamento"), placeholders),
        unit_id=unit_id,
        unit_resolved=resolved,
        status=normalize_status(f.get("status"), rules.status_synonyms, rules.statuses_for(asset_type)),
        sector=clean_text(f.get("setor")),
        floor=clean_text(f.get("pavimento")),
        room=clean_text(f.get("sala")),
        assignee=clean_text(f.get("funcionario")),
        brand=clean_text(f.get("marca")),
        model=clean_text(f.get("modelo")),
        notes=clean_text(f.get("observacao")),
        sheet_name=raw.sheet_name,
        row_number=raw.row_number,
        synthetic_key=synthetic,
    )

    if asset_type is AssetType.COMPUTER:
        return Computer(
            **base,
            hostname=clean_text(f.get("hostname")),
            processor=clean_text(f.get("processador")),
            memory=clean_text(f.get("memoria")),
            storage=clean_text(f.get("hd_ssd")),
            os=clean_text(f.get("so")),
            antivirus=clean_text(f.get("antivirus")),
            mac_address=clean_text(f.get("mac")),
            service_tag=clean_identifier(f.get("service_tag"), placeholders),
        )
    return Printer(
        **base,
        ip=clean_text(f.get("ip")),
        connectivity=clean_text(f.get("conectividade")),
        cartridge=clean_text(f.get("cartucho")),
        color=clean_text(f.get("colorido")),
        duplex=clean_text(f.get("frente_verso")),
    )


@dataclass
class NormalizationResult:
    """Normalized assets plus rows dropped for lacking the sector grouping field."""
    assets: list[NormalizedAsset] = field(default_factory=list)
    dropped: list[NormalizedAsset] = field(default_factory=list)


def normalize_rows(
    rows: Iterable[RawRow],
    asset_type: AssetType,
    units: Sequence[Unit],
    rules: ImportRules,
    keygen: SyntheticKeyGenerator | None = None,
) -> NormalizationResult:
    keygen = keygen or SyntheticKeyGenerator(rules.synthetic_key_prefix)
    result = NormalizationResult()
    for raw in rows:
        if raw.is_blank():
            continue
        asset = normalize_row(raw, asset_type, units, rules, keygen)
        if asset.sector is None:
            result.dropped.append(asset)
        else:
            result.assets.append(asset)
    logger.info(
        f"normalized {len(result.assets)} rows ({len(result.dropped)} without sector, "
        f"{keygen.issued} synthesized keys)"
    )
    return result
