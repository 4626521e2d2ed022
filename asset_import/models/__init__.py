"""Domain models for the bulk asset import engine."""

from .asset import AssetType, Computer, NormalizedAsset, Printer
from .classified_row import Classification, ClassifiedRow
from .import_report import FailureRecord, FailureStage, ImportReport
from .permission import PermissionContext, Unit
from .row_data import RawRow
from .validation import ValidationOutcome, ValidationResult
from .vocabulary import DiscoveredTerms, VocabularyCategory, VocabularySnapshot

__all__ = [
    # Rows & assets
    "RawRow",
    "AssetType",
    "NormalizedAsset",
    "Computer",
    "Printer",
    # Validation
    "ValidationOutcome",
    "ValidationResult",
    "DiscoveredTerms",
    "VocabularyCategory",
    "VocabularySnapshot",
    "PermissionContext",
    "Unit",
    # Classification & report
    "Classification",
    "ClassifiedRow",
    "FailureRecord",
    "FailureStage",
    "ImportReport",
]
