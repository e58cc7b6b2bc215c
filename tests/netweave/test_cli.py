from __future__ import annotations

import json

from click.testing import CliRunner

from netweave.cli import cli


def invoke(store, *args):
    return CliRunner().invoke(cli, ["--env", "testing", "--store", str(store), *args])


class TestCli:
    def test_inspect_shows_rows_without_saving(self, tmp_path):
        data = tmp_path / "people.csv"
        data.write_text("name,team\nalice,x\nbob,y\n", encoding="utf-8")
        store = tmp_path / "models.json"

        result = invoke(store, "inspect", str(data), "--limit", "1")
        assert result.exit_code == 0, result.output
        assert "alice" in result.output
        assert "bob" not in result.output

        saved = json.loads(json.loads(store.read_text(encoding="utf-8"))["netweave_models"])
        assert saved == {}

    def test_inspect_save_then_list_and_delete(self, tmp_path):
        data = tmp_path / "people.json"
        data.write_text(json.dumps([{"name": "alice"}]), encoding="utf-8")
        store = tmp_path / "models.json"

        result = invoke(store, "inspect", str(data), "--save", "people")
        assert result.exit_code == 0, result.output

        result = invoke(store, "models", "list")
        assert result.exit_code == 0, result.output
        assert "model1" in result.output

        result = invoke(store, "models", "schema", "model1")
        assert result.exit_code == 0, result.output
        assert "GenericClass" in result.output

        result = invoke(store, "models", "delete", "model1")
        assert result.exit_code == 0, result.output
        result = invoke(store, "models", "delete", "model1")
        assert result.exit_code != 0

    def test_inspect_unsupported_file(self, tmp_path):
        data = tmp_path / "notes.unknownext"
        data.write_text("hello", encoding="utf-8")
        result = invoke(tmp_path / "models.json", "inspect", str(data))
        assert result.exit_code != 0
        assert "Unsupported file extension" in result.output
