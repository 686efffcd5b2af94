import json

import pytest

from casemap.application.dto.analysis_dto import CaseResult
from casemap.domain.errors import ExtractionError, ValidationError
from casemap.domain.models import CaseAnalysis, GraphData, GraphNode
from casemap.domain.types import Result
from casemap.interface.cli import main as cli


class FakeUseCase:
    def __init__(self, result) -> None:
        self.result = result
        self.requests: list = []

    def execute(self, req):  # type: ignore[no-untyped-def]
        self.requests.append(req)
        return self.result


def _ok_result() -> Result:
    graph = GraphData(
        case_name="Serta",
        nodes=(GraphNode(id="n1", label="Serta", type="opco", notes="", color="#f59e0b", x=60.0, y=60.0),),
    )
    case = CaseResult(graph=graph, analysis=CaseAnalysis.empty(), chunks=4, warnings=["Brief unavailable: x"])
    return Result.success(case)


@pytest.fixture
def wire(monkeypatch):
    captured: dict = {}

    def _install(result):
        uc = FakeUseCase(result)

        def _build(settings=None, with_rag=True, ocr_backend=None):
            captured.update(with_rag=with_rag, ocr_backend=ocr_backend)
            return uc

        monkeypatch.setattr(cli, "build_analyze_use_case", _build)
        return uc

    _install.captured = captured
    return _install


def test_success_prints_json(wire, capsys, monkeypatch):
    monkeypatch.setenv("RAG_TOP_K", "5")
    uc = wire(_ok_result())
    code = cli.main(["--path", "serta.pdf", "--no-rag", "--ocr", "pypdf"])

    assert code == 0
    captured = capsys.readouterr()
    data = json.loads(captured.out)
    assert data["graph"]["caseName"] == "Serta"
    assert data["chunks"] == 4
    assert "[WARN] Brief unavailable: x" in captured.err
    assert wire.captured == {"with_rag": False, "ocr_backend": "pypdf"}
    req = uc.requests[0]
    assert (req.path, req.use_rag, req.top_k) == ("serta.pdf", False, 5)


def test_out_file(wire, tmp_path, capsys):
    wire(_ok_result())
    out = tmp_path / "case.json"
    assert cli.main(["--path", "serta.pdf", "--out", str(out)]) == 0
    assert json.loads(out.read_text(encoding="utf-8"))["graph"]["nodes"][0]["x"] == 60.0
    assert f"Wrote {out}" in capsys.readouterr().out


def test_error_is_reported(wire, capsys):
    wire(Result.failure(ExtractionError("graph extraction returned invalid JSON")))
    assert cli.main(["--path", "serta.pdf"]) == 1
    assert "[ERROR] ExtractionError: graph extraction returned invalid JSON" in capsys.readouterr().out


def test_wiring_error_is_reported(monkeypatch, capsys):
    def _boom(settings=None, with_rag=True, ocr_backend=None):
        raise ValidationError("unknown EMBEDDING_BACKEND 'x'")

    monkeypatch.setattr(cli, "build_analyze_use_case", _boom)
    assert cli.main(["--path", "a.pdf"]) == 1
    assert "[ERROR] ValidationError" in capsys.readouterr().out


def test_path_is_required():
    with pytest.raises(SystemExit):
        cli.main([])
