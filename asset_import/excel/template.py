from __future__ import annotations

from pathlib import Path

import pandas as pd

from ..models.asset import AssetType

"""Blank import template: one sheet per asset type, header row plus one example.

The headers are the ones read_workbook / normalize_row recognize, so a filled
template imports without column mapping.
"""

__all__ = [
    "TEMPLATE_FILENAME",
    "TEMPLATE_SHEETS",
    "template_rows",
    "write_template",
]

TEMPLATE_FILENAME = "modelo_importacao_ativos.xlsx"

TEMPLATE_SHEETS: dict[AssetType, str] = {
    AssetType.COMPUTER: "Computadores",
    AssetType.PRINTER: "Impressoras",
}

_COMPUTER_HEADERS = [
    "Tombamento", "Tipo", "Marca", "Modelo", "Serial", "Hostname", "Status", "Unidade",
    "Setor", "Sala", "Pavimento", "Funcionario", "Processador", "Memoria", "HD_SSD",
    "SO", "Antivirus", "MAC", "Service_Tag", "Observacao",
]
_PRINTER_HEADERS = [
    "Tombamento", "Tipo", "Marca", "Modelo", "Serial", "IP", "Status", "Unidade",
    "Setor", "Sala", "Pavimento", "Funcionario", "Conectividade", "Cartucho",
    "Colorido", "Frente_Verso", "Observacao",
]


def template_rows(asset_type: AssetType, unit: str = "HMR") -> list[list[str]]:
    """Header row and example row for one asset type's sheet."""
    if asset_type is AssetType.COMPUTER:
        example = [
            "CMP-001", asset_type.value, "Dell", "Optiplex 3080", "123456", "HMR-TI-01", "Em uso", unit,
            "TI", "Sala TI", "Térreo", "João", "i5", "8GB", "256GB",
            "Windows 10", "Kaspersky", "", "", "",
        ]
        return [list(_COMPUTER_HEADERS), example]
    example = [
        "IMP-001", asset_type.value, "Brother", "8157", "987654", "192.168.0.50", "Em uso", unit,
        "Recepção", "Balcão", "Térreo", "", "Rede", "TN-3472",
        "Não", "Sim", "",
    ]
    return [list(_PRINTER_HEADERS), example]


def write_template(path: Path | str, unit: str = "HMR") -> Path:
    """Write the two-sheet template workbook and return its path.

    unit is the code placed in the example rows' Unidade column.
    """
    path = Path(path)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for asset_type, sheet_name in TEMPLATE_SHEETS.items():
            frame = pd.DataFrame(template_rows(asset_type, unit))
            frame.to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path
