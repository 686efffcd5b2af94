from casemap.infrastructure.telemetry import otel_adapter
from casemap.infrastructure.telemetry.otel_adapter import OpenTelemetryAdapter, OtelConfig


def test_metrics_are_noops_without_sdk(monkeypatch):
    def _missing(name):
        raise ImportError(name)

    monkeypatch.setattr(otel_adapter, "import_module", _missing)
    adapter = OpenTelemetryAdapter(OtelConfig())
    adapter.incr("casemap.runs.total", {"status": "ok"})
    adapter.observe("casemap.chunks.count", 12)
    assert adapter._meter is None


def test_instruments_are_created_once():
    class FakeInstrument:
        def __init__(self) -> None:
            self.values: list[tuple] = []

        def add(self, value, attributes=None):
            self.values.append((value, attributes))

        def record(self, value, attributes=None):
            self.values.append((value, attributes))

    class FakeMeter:
        def __init__(self) -> None:
            self.created: list[str] = []

        def create_counter(self, name, description=""):
            self.created.append(name)
            return FakeInstrument()

        def create_histogram(self, name, description=""):
            self.created.append(name)
            return FakeInstrument()

    adapter = OpenTelemetryAdapter.__new__(OpenTelemetryAdapter)
    adapter._cfg = OtelConfig()
    adapter._meter = FakeMeter()
    adapter._counters = {}
    adapter._histograms = {}

    adapter.incr("casemap.runs.total", {"status": "ok"})
    adapter.incr("casemap.runs.total", {"status": "error"})
    adapter.observe("casemap.graph.nodes", 7)

    assert adapter._meter.created == ["casemap.runs.total", "casemap.graph.nodes"]
    assert adapter._counters["casemap.runs.total"].values == [
        (1, {"status": "ok"}),
        (1, {"status": "error"}),
    ]
    assert adapter._histograms["casemap.graph.nodes"].values == [(7, {})]
