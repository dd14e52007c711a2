"""Tests for the flowgraph-publish command."""

import json

from flowserver.cli import main
from flowserver.publish import get_workflow, list_workflow_work_items


def _write_graph(tmp_path) -> str:
    graph = {
        "name": "Hiring",
        "nodes": [
            {"id": "1", "data": {"label": "Screen", "type": "task", "config": "{}"}},
            {
                "id": "2",
                "data": {"label": "Interview", "type": "task", "config": '{"blockedBy": ["1"]}'},
            },
        ],
        "edges": [{"id": "e1", "source": "1", "target": "2", "style": "{}"}],
    }
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(graph))
    return str(path)


class TestPublishCommand:
    def test_publishes_file(self, db_path, tmp_path, capsys):
        exit_code = main([_write_graph(tmp_path), "--project", "p1", "--db", str(db_path)])
        assert exit_code == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["tasksCreated"] == 2
        assert len(list_workflow_work_items("p1")) == 2

    def test_save_only_creates_no_tasks(self, db_path, tmp_path, capsys):
        exit_code = main(
            [_write_graph(tmp_path), "--project", "p1", "--db", str(db_path), "--save-only"]
        )
        assert exit_code == 0
        assert json.loads(capsys.readouterr().out)["nodesCount"] == 2
        assert get_workflow("p1").name == "Hiring"
        assert list_workflow_work_items("p1") == []

    def test_missing_file(self, db_path, tmp_path, capsys):
        exit_code = main([str(tmp_path / "nope.json"), "--project", "p1"])
        assert exit_code == 1
        assert "not found" in capsys.readouterr().err

    def test_invalid_file(self, db_path, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"nodes": []}))
        assert main([str(path), "--project", "p1"]) == 1
        assert "invalid workflow file" in capsys.readouterr().err

    def test_unusable_database_path(self, db_path, tmp_path, capsys):
        """a directory cannot be opened as the database file."""
        exit_code = main([_write_graph(tmp_path), "--project", "p1", "--db", str(tmp_path)])
        assert exit_code == 1
        assert "could not open database" in capsys.readouterr().err
