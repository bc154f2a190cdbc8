"""
Unit tests for MetricsCollector.

Tests metrics collection functionality including:
- Thread-safety under concurrent access
- Bounded storage with LRU eviction
- Tag aggregation and the timed() context manager
"""

import threading

import pytest

from surrealdb_pool.observability.metrics import (MetricsCollector,
                                                  OperationMetrics)


class TestOperationMetrics:
    def test_record_tracks_min_max_avg(self):
        metrics = OperationMetrics(operation_name="connection.create")
        metrics.record(10.0)
        metrics.record(30.0, success=False)

        assert metrics.count == 2
        assert metrics.avg_duration_ms == 20.0
        assert metrics.min_duration_ms == 10.0
        assert metrics.max_duration_ms == 30.0
        assert metrics.error_rate == 50.0

    def test_to_dict_without_records(self):
        data = OperationMetrics(operation_name="pool.wait").to_dict()
        assert data["count"] == 0
        assert data["min_duration_ms"] == 0.0
        assert data["last_execution"] is None


class TestMetricsCollectorThreadSafety:
    """Test thread-safety of metrics collection."""

    def test_concurrent_record_operation(self):
        """Test that concurrent record_operation calls are thread-safe."""
        collector = MetricsCollector()
        num_threads = 10
        operations_per_thread = 100
        barrier = threading.Barrier(num_threads)

        def record_operations(thread_id: int):
            barrier.wait()
            for i in range(operations_per_thread):
                collector.record_operation(
                    "connection.create",
                    duration_ms=10.0 + i,
                    success=True,
                    thread_id=thread_id,
                )

        threads = [
            threading.Thread(target=record_operations, args=(i,)) for i in range(num_threads)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert collector.get_operation_count("connection.create") == (
            num_threads * operations_per_thread
        )


class TestMetricsCollector:
    def test_tags_stored_under_separate_keys(self):
        collector = MetricsCollector()
        collector.record_operation("connection.recycle", 5.0, success=True, outcome="ok")
        collector.record_operation("connection.recycle", 7.0, success=False, outcome="timeout")

        metrics = collector.get_metrics("connection.recycle")["metrics"]

        assert set(metrics) == {
            "connection.recycle[outcome=ok]",
            "connection.recycle[outcome=timeout]",
        }

    def test_summary_aggregates_tags(self):
        collector = MetricsCollector()
        collector.record_operation("connection.recycle", 5.0, success=True, outcome="ok")
        collector.record_operation("connection.recycle", 7.0, success=False, outcome="failed")
        collector.record_operation("pool.wait", 1.0)

        summary = collector.get_summary()["summary"]

        assert summary["connection.recycle"]["count"] == 2
        assert summary["connection.recycle"]["error_count"] == 1
        assert summary["pool.wait"]["count"] == 1
        assert collector.get_error_count("connection.recycle") == 1

    def test_lru_eviction(self):
        collector = MetricsCollector(max_metrics=2)
        collector.record_operation("a", 1.0)
        collector.record_operation("b", 1.0)
        collector.record_operation("a", 1.0)
        collector.record_operation("c", 1.0)

        keys = set(collector.get_metrics()["metrics"])
        assert keys == {"a", "c"}

    def test_timed_records_success(self):
        collector = MetricsCollector()

        with collector.timed("connection.destroy", reason="discarded"):
            pass

        assert collector.get_operation_count("connection.destroy") == 1
        assert collector.get_error_count("connection.destroy") == 0

    def test_timed_records_failure_and_reraises(self):
        collector = MetricsCollector()

        with pytest.raises(ValueError):
            with collector.timed("pool.wait"):
                raise ValueError("boom")

        assert collector.get_error_count("pool.wait") == 1

    def test_reset(self):
        collector = MetricsCollector()
        collector.record_operation("pool.wait", 1.0)
        collector.reset()
        assert collector.get_metrics()["total_operations"] == 0
