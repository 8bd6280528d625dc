from pathlib import Path

import pytest

from mermaid_sequence.cli import main
from mermaid_sequence.config import RenderConfig
from mermaid_sequence.errors import DiagramError
from mermaid_sequence.scenario import load_scenarios
from mermaid_sequence.suite import render_suite
from mermaid_sequence.writer import write_md

FIXTURE_DIR = Path(__file__).resolve().parents[1] / "fixtures"
SCENARIO_DIR = FIXTURE_DIR / "scenarios"
GOLDEN = (FIXTURE_DIR / "golden" / "wake_up.mmd").read_text(encoding="utf-8").rstrip("\n")


def write_scenario(tmp_path: Path, body: str) -> Path:
    p = tmp_path / "scenario.yaml"
    p.write_text(body, encoding="utf-8")
    return p


def test_write_md_wraps_in_fence(tmp_path):
    out = tmp_path / "nested" / "d.md"
    write_md(out, "Title", "sequenceDiagram\n    participant A")
    assert out.read_text(encoding="utf-8") == (
        "# Title\n\n```mermaid\nsequenceDiagram\n    participant A\n```\n"
    )


def test_write_md_crlf_is_not_translated(tmp_path):
    out = tmp_path / "d.md"
    write_md(out, "T", "sequenceDiagram\r\n    actor A", newline="\r\n")
    assert out.read_bytes() == b"# T\r\n\r\n```mermaid\r\nsequenceDiagram\r\n    actor A\r\n```\r\n"


def test_render_suite_writes_diagrams_and_index(tmp_path):
    written = render_suite(load_scenarios(SCENARIO_DIR), tmp_path)
    assert [p.name for p in written] == ["checkout.md", "wake_up.md", "index.md"]

    wake_up = (tmp_path / "wake_up.md").read_text(encoding="utf-8")
    assert wake_up == f"# Wake up Subaru\n\n```mermaid\n{GOLDEN}\n```\n"

    index = (tmp_path / "index.md").read_text(encoding="utf-8")
    assert "| [checkout](checkout.md) | Checkout with retries |" in index
    assert "| [wake_up](wake_up.md) | Wake up Subaru |" in index


def test_render_suite_crlf_index_uses_one_separator(tmp_path):
    render_suite(load_scenarios(SCENARIO_DIR), tmp_path, RenderConfig(line_separator_name="crlf"))
    for name in ("index.md", "wake_up.md"):
        raw = (tmp_path / name).read_bytes()
        assert b"\r\n" in raw
        assert raw.count(b"\n") == raw.count(b"\r\n"), name


def test_render_suite_rejects_duplicate_ids(tmp_path):
    model = {"diagrams": [{"id": "a", "steps": []}, {"id": "a", "steps": []}]}
    with pytest.raises(ValueError):
        render_suite(model, tmp_path)


def test_render_suite_surfaces_construction_errors_before_writing(tmp_path):
    model = {"diagrams": [{"id": "bad", "steps": [{"loop_start": "x"}]}]}
    with pytest.raises(DiagramError, match="'bad'"):
        render_suite(model, tmp_path)
    assert list(tmp_path.iterdir()) == []

    render_suite(model, tmp_path, RenderConfig(check_nesting=False), write_index=False)
    assert [p.name for p in tmp_path.iterdir()] == ["bad.md"]


def test_cli_prints_first_diagram(capsys):
    main(["--scenario", str(SCENARIO_DIR / "wake_up.yaml")])
    assert capsys.readouterr().out == GOLDEN + "\n"


def test_cli_markdown_and_diagram_selection(capsys):
    main(["--scenario", str(SCENARIO_DIR), "--diagram", "wake_up", "--markdown"])
    assert capsys.readouterr().out == f"```mermaid\n{GOLDEN}\n```\n"


def test_cli_crlf(capsys):
    main(["--scenario", str(SCENARIO_DIR / "wake_up.yaml"), "--line-separator", "crlf"])
    out = capsys.readouterr().out
    assert out == GOLDEN.replace("\n", "\r\n") + "\r\n"


def test_cli_out_dir(tmp_path):
    main(["--scenario", str(SCENARIO_DIR), "--out-dir", str(tmp_path)])
    assert sorted(p.name for p in tmp_path.iterdir()) == ["checkout.md", "index.md", "wake_up.md"]


def test_cli_unknown_diagram_exits_2(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--scenario", str(SCENARIO_DIR), "--diagram", "missing"])
    assert excinfo.value.code == 2
    assert "error:" in capsys.readouterr().err


def test_cli_validation_errors_exit_2(tmp_path, capsys):
    p = write_scenario(tmp_path, "diagrams:\n  - id: d\n    steps:\n      - loop_end\n")
    with pytest.raises(SystemExit) as excinfo:
        main(["--scenario", str(p)])
    assert excinfo.value.code == 2
    assert "no open block" in capsys.readouterr().err


def test_cli_no_check_nesting_renders_unbalanced(tmp_path, capsys):
    p = write_scenario(tmp_path, "diagrams:\n  - id: d\n    steps:\n      - loop_end\n")
    main(["--scenario", str(p), "--no-check-nesting"])
    assert capsys.readouterr().out == "sequenceDiagram\n    end\n"


def test_cli_strict_fails_on_warnings(tmp_path, capsys):
    p = write_scenario(
        tmp_path,
        "diagrams:\n"
        "  - id: d\n"
        "    steps:\n"
        "      - participant: A\n"
        "      - sync_request: [A, B, hi]\n",
    )
    main(["--scenario", str(p)])
    captured = capsys.readouterr()
    assert "warning:" in captured.err
    assert captured.out == "sequenceDiagram\n    participant A\n    A->>B: hi\n"

    with pytest.raises(SystemExit) as excinfo:
        main(["--scenario", str(p), "--strict"])
    assert excinfo.value.code == 2


def test_cli_construction_error_prints_nothing_to_stdout(tmp_path, capsys, monkeypatch):
    p = write_scenario(tmp_path, "diagrams:\n  - id: d\n    steps:\n      - loop_start: x\n")
    # Let the unclosed block reach the builder instead of the validator.
    monkeypatch.setattr("mermaid_sequence.cli.validate_scenarios", lambda model, cfg: ([], []))

    for extra in ([], ["--markdown"]):
        with pytest.raises(SystemExit) as excinfo:
            main(["--scenario", str(p), *extra])
        assert excinfo.value.code == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "unclosed block" in captured.err
