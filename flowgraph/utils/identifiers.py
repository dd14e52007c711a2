"""ID generation and timestamp utilities."""

import uuid
from datetime import datetime, timezone


def generate_definition_id() -> str:
    """Generate a unique process definition ID (UUID4)."""
    return str(uuid.uuid4())


def generate_work_item_id() -> str:
    """Generate a unique work item ID (UUID4)."""
    return str(uuid.uuid4())


def utc_timestamp() -> str:
    """Generate an ISO8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()
