"""Operation timing for conversion runs.

Each tracked step of a conversion (reading the workbook, writing the output,
stripping the terminator) produces an OperationMetrics entry. The collector
holds them until the converter takes a finished run's entries out again.
"""

import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional


@dataclass
class OperationMetrics:
    """Tracks timing and outcome of a single operation."""

    operation_name: str
    correlation_id: str
    start_time: float
    end_time: Optional[float] = None
    duration_ms: Optional[float] = None
    success: Optional[bool] = None
    error_type: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def complete(self, success: bool, error_type: Optional[str] = None) -> None:
        """Mark operation as complete and calculate duration.

        Args:
            success: Whether the operation succeeded
            error_type: Exception class name if the operation failed
        """
        self.end_time = time.perf_counter()
        self.duration_ms = (self.end_time - self.start_time) * 1000
        self.success = success
        self.error_type = error_type

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_name": self.operation_name,
            "correlation_id": self.correlation_id,
            "duration_ms": self.duration_ms,
            "success": self.success,
            "error_type": self.error_type,
            "metadata": self.metadata.copy()
        }


class MetricsCollector:
    """Collects operation metrics, grouped by run ID."""

    def __init__(self):
        self.metrics: List[OperationMetrics] = []
        self._lock = Lock()

    def record_operation(self, metrics: OperationMetrics) -> None:
        with self._lock:
            self.metrics.append(metrics)

    def get_run_metrics(self, correlation_id: str) -> List[OperationMetrics]:
        """Get every recorded operation of one run, in completion order."""
        with self._lock:
            return [m for m in self.metrics if m.correlation_id == correlation_id]

    def pop_run_metrics(self, correlation_id: str) -> List[OperationMetrics]:
        """Remove and return every recorded operation of one run."""
        with self._lock:
            run_metrics = [m for m in self.metrics if m.correlation_id == correlation_id]
            self.metrics = [m for m in self.metrics if m.correlation_id != correlation_id]
        return run_metrics

    def get_metrics_summary(self, operation_name: Optional[str] = None) -> Dict[str, Any]:
        """Get summary statistics for operations.

        Args:
            operation_name: Optional filter by operation name

        Returns:
            Summary statistics dictionary
        """
        with self._lock:
            filtered = [
                m for m in self.metrics
                if operation_name is None or m.operation_name == operation_name
            ]

        if not filtered:
            return {"total_operations": 0}

        failed = [m for m in filtered if m.success is False]
        durations = [m.duration_ms for m in filtered if m.duration_ms is not None]

        summary: Dict[str, Any] = {
            "total_operations": len(filtered),
            "successful_operations": sum(1 for m in filtered if m.success),
            "failed_operations": len(failed),
        }

        if durations:
            summary["total_duration_ms"] = sum(durations)
            summary["max_duration_ms"] = max(durations)

        if failed:
            error_counts: Dict[str, int] = {}
            for metrics in failed:
                error_type = metrics.error_type or "Unknown"
                error_counts[error_type] = error_counts.get(error_type, 0) + 1
            summary["error_breakdown"] = error_counts

        return summary

    def clear_metrics(self) -> None:
        with self._lock:
            self.metrics.clear()


# Global metrics collector instance
_global_metrics_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance."""
    return _global_metrics_collector


def create_operation_metrics(operation_name: str, correlation_id: str) -> OperationMetrics:
    """Create new operation metrics instance.

    Args:
        operation_name: Name of the operation being tracked
        correlation_id: Run ID the operation belongs to

    Returns:
        New OperationMetrics instance with its clock started
    """
    return OperationMetrics(
        operation_name=operation_name,
        correlation_id=correlation_id,
        start_time=time.perf_counter()
    )
