"""database initialization helpers."""

from pathlib import Path

from flowserver.process_db import init_db as init_process_db
from flowserver.work_item_db import init_db as init_work_item_db


def init_all(db_path: Path | None = None) -> None:
    """initialize all sqlite tables."""
    init_process_db(db_path)
    init_work_item_db(db_path)
