"""Shared fixtures: every test gets its own sqlite file."""

import pytest

from flowgraph.models.work_item import WorkItemStatus
from flowgraph.utils.identifiers import generate_work_item_id, utc_timestamp
from flowserver import process_db, work_item_db
from flowserver.db import init_all


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """point the store at a fresh database with all tables created."""
    path = tmp_path / "flowgraph.db"
    monkeypatch.setattr(process_db, "FLOW_DB_PATH", path)
    init_all(path)
    return path


@pytest.fixture
def manual_work_item():
    """insert a work item with no origin tag, the way users create them by hand."""

    def create(tx, project_id, name, status=WorkItemStatus.todo, assignee_ids=()):
        now = utc_timestamp()
        work_item_id = generate_work_item_id()
        tx.execute(
            """
            insert into work_items (id, project_id, name, status, created_at, updated_at)
            values (?, ?, ?, ?, ?, ?)
            """,
            (work_item_id, project_id, name, status.value, now, now),
        )
        tx.executemany(
            "insert into work_item_assignees (work_item_id, user_id, position) values (?, ?, ?)",
            [(work_item_id, user_id, position) for position, user_id in enumerate(assignee_ids)],
        )
        return work_item_db.get_work_item(tx, work_item_id)

    return create


@pytest.fixture
def mark_status():
    """move a work item along its board, as a user would between publishes."""

    def update(tx, work_item_id, status):
        tx.execute(
            "update work_items set status = ?, updated_at = ? where id = ?",
            (status.value, utc_timestamp(), work_item_id),
        )

    return update
