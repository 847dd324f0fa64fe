"""Tests for run IDs, operation metrics and the logging decorators."""

import pytest

from xlsx_to_csv.utils.correlation import CorrelationContext
from xlsx_to_csv.utils.logging_decorators import log_operation, operation_context
from xlsx_to_csv.utils.metrics import MetricsCollector, create_operation_metrics, get_metrics_collector


class TestCorrelationContext:
    """Test cases for CorrelationContext."""

    def test_generated_ids_are_unique(self):
        first = CorrelationContext.generate_correlation_id()
        second = CorrelationContext.generate_correlation_id()
        assert first != second
        assert len(first) == 12

    def test_context_sets_and_restores(self):
        outer = CorrelationContext.get_correlation_id()

        with CorrelationContext("run-1") as run_id:
            assert run_id == "run-1"
            assert CorrelationContext.get_correlation_id() == "run-1"
            with CorrelationContext("run-2"):
                assert CorrelationContext.get_correlation_id() == "run-2"
            assert CorrelationContext.get_correlation_id() == "run-1"

        assert CorrelationContext.get_correlation_id() == outer

    def test_no_run_id_outside_context(self):
        assert CorrelationContext.get_correlation_id() is None


class TestMetrics:
    """Test cases for OperationMetrics and MetricsCollector."""

    def test_complete_sets_duration(self):
        metrics = create_operation_metrics("read", "run")
        metrics.complete(success=True)

        assert metrics.success is True
        assert metrics.duration_ms >= 0
        assert metrics.to_dict()["operation_name"] == "read"

    def test_summary_and_run_filter(self):
        collector = MetricsCollector()
        ok = create_operation_metrics("read", "run-a")
        ok.complete(success=True)
        failed = create_operation_metrics("write", "run-b")
        failed.complete(success=False, error_type="WriteError")
        collector.record_operation(ok)
        collector.record_operation(failed)

        summary = collector.get_metrics_summary()

        assert summary["total_operations"] == 2
        assert summary["successful_operations"] == 1
        assert summary["error_breakdown"] == {"WriteError": 1}
        assert collector.get_run_metrics("run-a") == [ok]
        assert collector.get_metrics_summary("missing") == {"total_operations": 0}

    def test_pop_run_metrics_removes_only_that_run(self):
        collector = MetricsCollector()
        first = create_operation_metrics("read", "run-a")
        second = create_operation_metrics("read", "run-b")
        collector.record_operation(first)
        collector.record_operation(second)

        assert collector.pop_run_metrics("run-a") == [first]
        assert collector.metrics == [second]
        assert collector.pop_run_metrics("run-a") == []


class TestLogOperation:
    """Test cases for log_operation and operation_context."""

    def test_success_recorded(self):
        @log_operation("double")
        def double(value):
            return value * 2

        with CorrelationContext("run-ok"):
            assert double(4) == 8

        recorded = get_metrics_collector().get_run_metrics("run-ok")
        assert [m.operation_name for m in recorded] == ["double"]
        assert recorded[0].success is True

    def test_failure_recorded_and_reraised(self):
        @log_operation("explode")
        def explode():
            raise KeyError("boom")

        with CorrelationContext("run-fail"):
            with pytest.raises(KeyError):
                explode()

        recorded = get_metrics_collector().get_run_metrics("run-fail")
        assert recorded[0].success is False
        assert recorded[0].error_type == "KeyError"

    def test_operation_context_metadata(self):
        with CorrelationContext("run-ctx"):
            with operation_context("step", file_path="a.xlsx") as metrics:
                metrics.add_metadata("rows", 3)

        recorded = get_metrics_collector().get_run_metrics("run-ctx")[0]
        assert recorded.metadata == {"file_path": "a.xlsx", "rows": 3}
        assert recorded.success is True

    def test_operation_context_reraises(self):
        with CorrelationContext("run-ctx-fail"):
            with pytest.raises(ValueError):
                with operation_context("step"):
                    raise ValueError("bad")

        recorded = get_metrics_collector().get_run_metrics("run-ctx-fail")[0]
        assert recorded.success is False
        assert recorded.error_type == "ValueError"

    def test_standalone_calls_get_separate_run_ids(self):
        @log_operation("standalone")
        def standalone():
            return CorrelationContext.get_correlation_id()

        first = standalone()
        second = standalone()

        assert first is not None and second is not None
        assert first != second
        assert CorrelationContext.get_correlation_id() is None
        assert [m.correlation_id for m in get_metrics_collector().metrics] == [first, second]

    def test_standalone_operation_context_leaves_no_run_id(self):
        with operation_context("step") as metrics:
            run_id = CorrelationContext.get_correlation_id()

        assert run_id is not None
        assert metrics.correlation_id == run_id
        assert CorrelationContext.get_correlation_id() is None

    def test_standalone_operation_context_reraises(self):
        with pytest.raises(ValueError):
            with operation_context("step"):
                raise ValueError("bad")

        assert CorrelationContext.get_correlation_id() is None
        assert get_metrics_collector().metrics[0].success is False
