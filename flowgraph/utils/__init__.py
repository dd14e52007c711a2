"""Utility functions for flowgraph."""

from flowgraph.utils.identifiers import (
    generate_definition_id,
    generate_work_item_id,
    utc_timestamp,
)

__all__ = [
    "generate_definition_id",
    "generate_work_item_id",
    "utc_timestamp",
]
