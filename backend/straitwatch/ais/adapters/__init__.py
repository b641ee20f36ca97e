"""Ingestion adapters for the different vessel event sources."""

from straitwatch.ais.adapters.base import (
    AdapterError,
    IngestionAdapter,
    SourceInfo,
    StatusCallback,
)

__all__ = [
    "AdapterError",
    "IngestionAdapter",
    "SourceInfo",
    "StatusCallback",
]
