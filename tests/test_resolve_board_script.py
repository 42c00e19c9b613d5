from __future__ import annotations

import importlib.util
import json
import sys
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "resolve_board.py"


@pytest.fixture()
def resolve_board():
    spec = importlib.util.spec_from_file_location("resolve_board", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture()
def chain_board(tmp_path: Path) -> Path:
    rows = [[0] * 5 for _ in range(10)]
    rows[0] = [1, 2, 2, 2, 2]
    rows[1] = [1, 3, 3, 3, 3]
    rows[2][0] = 3
    path = tmp_path / "board.json"
    path.write_text(json.dumps({"cols": 5, "rows": rows}))
    return path


def test_load_board_reads_dimensions(resolve_board, chain_board: Path) -> None:
    grid, rows, cols, max_shade = resolve_board.load_board(str(chain_board))
    assert (rows, cols, max_shade) == (10, 5, 4)
    assert int(grid.sum()) == 1 + 8 + 1 + 12 + 3


def test_main_prints_json_result(resolve_board, chain_board: Path, monkeypatch, capsys) -> None:
    monkeypatch.setattr(sys, "argv", ["resolve_board.py", "--board", str(chain_board),
                                      "--strict", "--json"])
    resolve_board.main()

    payload = json.loads(capsys.readouterr().out)
    assert payload["merges"] == 1
    assert payload["clears"] == 2
    assert payload["occupied"] == 0
    assert payload["violation"] is None


def test_main_exits_on_bad_board(resolve_board, tmp_path: Path, monkeypatch, capsys) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"rows": [[1, 2], [3]]}))
    monkeypatch.setattr(sys, "argv", ["resolve_board.py", "--board", str(path)])

    with pytest.raises(SystemExit) as exc:
        resolve_board.main()

    assert exc.value.code == 1
    assert "Error:" in capsys.readouterr().out
