"""Format aggregation: reconciliation and ranking."""

from .format_reconciler import (
    FormatSource,
    drop_unresolvable,
    is_resolvable,
    reconcile,
    response_records,
)
from .format_ranker import RankedFormats, finalize_formats, select_best

__all__ = [
    "FormatSource",
    "drop_unresolvable",
    "is_resolvable",
    "reconcile",
    "response_records",
    "RankedFormats",
    "finalize_formats",
    "select_best",
]
