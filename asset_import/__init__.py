"""Bulk asset import & reconciliation engine for the hospital IT-asset registry."""

__version__ = "0.1.0"
