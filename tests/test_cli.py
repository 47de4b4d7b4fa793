from pathlib import Path

from portfolio_gantt.__main__ import main


def test_cli_renders_chart_and_summary(store_path: Path, tmp_path: Path, capsys) -> None:
    out = tmp_path / "chart.png"

    code = main([str(store_path), "--out", str(out), "--no-view", "--summary", "--view-mode", "days"])

    assert code == 0
    assert out.exists()
    printed = capsys.readouterr().out
    assert "Showing 3 tasks from 2024-02-15 to 2024-04-05" in printed
    assert "Completed: 1" in printed
    assert "Not Started: 1" in printed


def test_cli_reports_dependency_violations(store_path: Path, tmp_path: Path, capsys) -> None:
    text = store_path.read_text(encoding="utf-8").replace("lag_days: 2", "lag_days: 5")
    store_path.write_text(text, encoding="utf-8")

    code = main([str(store_path), "--out", str(tmp_path / "c.svg"), "--no-view", "--check-dependencies"])

    assert code == 0
    assert "Dependency violation: design -> build (finish_to_start, lag 5d)" in capsys.readouterr().out


def test_cli_zoom_steps_and_project_selection(store_path: Path, tmp_path: Path, capsys) -> None:
    code = main(
        [str(store_path), "--project", "ops", "--out", str(tmp_path / "ops.png"), "--no-view", "--zoom-in", "2"]
    )

    assert code == 0
    assert "Showing 1 tasks" in capsys.readouterr().out


def test_cli_missing_store_exits_with_error(tmp_path: Path, capsys) -> None:
    code = main([str(tmp_path / "missing.yaml"), "--no-view"])

    assert code == 2
    assert "Error: task store not found" in capsys.readouterr().err


def test_cli_unknown_project(store_path: Path, capsys) -> None:
    code = main([str(store_path), "--project", "nope", "--no-view"])

    assert code == 2
    assert "unknown project 'nope'" in capsys.readouterr().err
