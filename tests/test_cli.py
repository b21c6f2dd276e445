import json
import logging
from types import SimpleNamespace

import pytest

import geodiagram.__main__ as cli
from geodiagram import UnsatisfiableConstraints


def _result(svg="<svg/>", positions=None, warnings=()):
    return SimpleNamespace(
        svg=svg,
        solution=SimpleNamespace(positions=positions or {"vertex_A": (40.0, 40.0)}),
        render=SimpleNamespace(warnings=list(warnings)),
    )


def test_main_writes_svg_document(tmp_path, monkeypatch):
    doc_path = tmp_path / "scene.json"
    doc_path.write_text(json.dumps({"type": "constraintGeometryDiagram"}), encoding="utf-8")

    calls = []

    def _build(text, options):
        calls.append((text, options))
        return _result()

    monkeypatch.setattr(cli, "build_diagram", _build)

    out_path = tmp_path / "out" / "diagram.svg"
    cli.main([str(doc_path), "-o", str(out_path), "--no-gauge"])

    assert out_path.read_text(encoding="utf-8") == "<svg/>"
    assert len(calls) == 1
    assert json.loads(calls[0][0]) == {"type": "constraintGeometryDiagram"}
    assert calls[0][1].solve.gauge is False


def test_main_prints_to_stdout_and_logs_positions(tmp_path, monkeypatch, capsys, caplog):
    doc_path = tmp_path / "scene.json"
    doc_path.write_text("{}", encoding="utf-8")
    warning = SimpleNamespace(message="label 'A' clamped")
    monkeypatch.setattr(cli, "build_diagram", lambda text, options: _result(warnings=[warning]))

    with caplog.at_level(logging.INFO, logger="geodiagram.__main__"):
        cli.main([str(doc_path), "--positions"])

    assert capsys.readouterr().out == "<svg/>\n"
    assert "vertex_A = (40.0000, 40.0000)" in caplog.text
    assert "label 'A' clamped" in caplog.text


def test_main_exits_non_zero_on_diagram_error(tmp_path, monkeypatch, capsys):
    doc_path = tmp_path / "scene.json"
    doc_path.write_text("{}", encoding="utf-8")

    def _fail(text, options):
        raise UnsatisfiableConstraints("constraints are unsatisfiable")

    monkeypatch.setattr(cli, "build_diagram", _fail)

    with pytest.raises(SystemExit) as exc:
        cli.main([str(doc_path)])

    assert exc.value.code == 1
    assert capsys.readouterr().out == ""
