"""Domain models for the Tally import pipeline."""

from .aggregation import AggregationBucket, GroupBucket, TargetBucket
from .config_models import PipelineConfig
from .import_record import ImportDocument, ImportMeta, ImportResult, ImportStatus
from .normalized_row import NormalizedRow

__all__ = [
    # Configuration
    "PipelineConfig",
    # Rows & aggregation
    "NormalizedRow",
    "AggregationBucket",
    "TargetBucket",
    "GroupBucket",
    # Imports
    "ImportDocument",
    "ImportMeta",
    "ImportResult",
    "ImportStatus",
]
