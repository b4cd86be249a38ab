"""Unit tests for courseware.core.metrics: Prometheus metric definitions.

These tests do NOT require a database; they verify metric objects exist and
are correctly typed.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Info

from courseware.core.metrics import (
    app_info,
    archive_purged_files_total,
    archive_purged_rows_total,
    archive_sweep_duration_seconds,
    bg_task_last_success,
    bg_task_runs_total,
    db_pool_checked_in,
    db_pool_checked_out,
    db_pool_overflow,
    db_pool_size,
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
    media_cascade_total,
)


class TestMetricTypes:
    """Verify that each exported metric is the expected Prometheus type."""

    def test_app_info_is_info(self):
        assert isinstance(app_info, Info)

    def test_http_requests_total_is_counter(self):
        assert isinstance(http_requests_total, Counter)

    def test_http_request_duration_is_histogram(self):
        assert isinstance(http_request_duration_seconds, Histogram)

    def test_http_requests_in_progress_is_gauge(self):
        assert isinstance(http_requests_in_progress, Gauge)

    def test_db_pool_gauges(self):
        assert isinstance(db_pool_size, Gauge)
        assert isinstance(db_pool_checked_in, Gauge)
        assert isinstance(db_pool_checked_out, Gauge)
        assert isinstance(db_pool_overflow, Gauge)

    def test_bg_task_metrics(self):
        assert isinstance(bg_task_runs_total, Counter)
        assert isinstance(bg_task_last_success, Gauge)

    def test_archive_metrics(self):
        assert isinstance(archive_purged_rows_total, Counter)
        assert isinstance(archive_purged_files_total, Counter)
        assert isinstance(archive_sweep_duration_seconds, Histogram)
        assert isinstance(media_cascade_total, Counter)


class TestMetricLabels:
    """Verify that metrics accept their expected label combinations."""

    def test_http_requests_total_labels(self):
        # Should not raise
        http_requests_total.labels(
            method="POST", endpoint="/api/v1/courses/{id}/archive", status="200"
        )

    def test_http_request_duration_labels(self):
        http_request_duration_seconds.labels(method="GET", endpoint="/api/v1/archive")

    def test_bg_task_labels(self):
        bg_task_runs_total.labels(task_name="archive_purge", status="success")
        bg_task_last_success.labels(task_name="archive_purge")

    def test_archive_labels(self):
        archive_purged_rows_total.labels(table="courses")
        archive_purged_files_total.labels(outcome="removed")
        media_cascade_total.labels(kind="thumbnail_image")
