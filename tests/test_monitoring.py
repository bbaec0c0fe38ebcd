import logging

import pytest

from restauri.core.monitoring import PerformanceMonitor


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monitor(clock):
    return PerformanceMonitor(clock=clock)


class TestRecording:

    def test_start_operation_records_success(self, monitor):
        end = monitor.start_operation("db.query")
        end()

        metrics = monitor.get_metrics("db.query")
        assert len(metrics) == 1
        assert metrics[0].success is True
        assert metrics[0].duration >= 0

    def test_end_is_idempotent(self, monitor):
        end = monitor.start_operation("db.query")
        end()
        end()
        assert len(monitor.get_metrics()) == 1

    def test_track_records_failures_and_reraises(self, monitor):
        with pytest.raises(RuntimeError):
            with monitor.track("db.query"):
                raise RuntimeError("boom")

        metric = monitor.get_metrics("db.query")[0]
        assert metric.success is False
        assert metric.error == "boom"

    def test_filter_by_operation(self, monitor):
        monitor.start_operation("a")()
        monitor.start_operation("b")()
        assert [m.operation for m in monitor.get_metrics("a")] == ["a"]
        assert len(monitor.get_metrics()) == 2


class TestAggregates:

    def test_empty_operation(self, monitor):
        assert monitor.get_average_response_time("missing") == 0.0
        assert monitor.get_error_rate("missing") == 0.0

    def test_error_rate(self, monitor):
        monitor.start_operation("op")()
        end = monitor.start_operation("op")
        end(RuntimeError("x"))
        assert monitor.get_error_rate("op") == 50.0

    def test_summary(self, monitor):
        monitor.start_operation("op")()
        summary = monitor.summary()
        assert summary["op"]["calls"] == 1
        assert summary["op"]["error_rate"] == 0.0
        assert summary["op"]["window_started_at"].endswith("+00:00")


class TestWindow:

    def test_old_metrics_are_dropped(self, monitor, clock):
        monitor.start_operation("op")()
        clock.now += PerformanceMonitor.WINDOW_SECONDS + 1
        monitor.start_operation("op")()
        assert len(monitor.get_metrics("op")) == 1

    def test_metrics_are_bounded(self, monitor):
        for _ in range(PerformanceMonitor.MAX_METRICS + 10):
            monitor.start_operation("op")()
        assert len(monitor.get_metrics()) == PerformanceMonitor.MAX_METRICS


class TestWarnings:

    def test_error_pattern_is_logged(self, monitor, caplog):
        with caplog.at_level(logging.ERROR, logger="restauri.core.monitoring"):
            for _ in range(PerformanceMonitor.ERROR_PATTERN_THRESHOLD):
                monitor.start_operation("db.query")(RuntimeError("down"))
        assert any("Error pattern detected for db.query" in r.getMessage() for r in caplog.records)

    def test_slow_operation_is_logged(self, monitor, caplog, monkeypatch):
        monkeypatch.setattr(PerformanceMonitor, "SLOW_OPERATION_MS", -1)
        with caplog.at_level(logging.WARNING, logger="restauri.core.monitoring"):
            monitor.start_operation("db.query")()
        assert any("Slow operation detected" in r.getMessage() for r in caplog.records)
