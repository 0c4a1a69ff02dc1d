"""
Tests for Prometheus business metrics.
"""

import pytest
from unittest.mock import patch
from prometheus_client import REGISTRY

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shared.monitoring import (
    track_booking_created,
    track_booking_cancelled,
    track_booking_deleted,
    track_booking_rejected,
    update_active_bookings,
    track_availability_query,
    track_damage_report,
    track_auth_attempt,
    track_jwt_issued,
    MetricsCollector,
    get_metrics_summary
)


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_booking_lifecycle_counters():
    before = {s: sample("uniraum_bookings_total", status=s) for s in ("confirmed", "cancelled", "deleted")}

    track_booking_created()
    track_booking_created()
    track_booking_cancelled()
    track_booking_deleted()

    assert sample("uniraum_bookings_total", status="confirmed") == before["confirmed"] + 2
    assert sample("uniraum_bookings_total", status="cancelled") == before["cancelled"] + 1
    assert sample("uniraum_bookings_total", status="deleted") == before["deleted"] + 1


def test_booking_rejections_by_reason():
    before = sample("uniraum_booking_rejections_total", reason="conflict")
    track_booking_rejected("conflict")
    assert sample("uniraum_booking_rejections_total", reason="conflict") == before + 1


def test_active_bookings_gauge():
    update_active_bookings(12)
    assert sample("uniraum_bookings_active") == 12
    update_active_bookings(0)
    assert sample("uniraum_bookings_active") == 0


def test_availability_query():
    before = sample("uniraum_availability_queries_total")
    track_availability_query(4)
    assert sample("uniraum_availability_queries_total") == before + 1
    assert sample("uniraum_rooms_available") == 4


def test_damage_reports_by_status():
    before = sample("uniraum_damage_reports_total", status="resolved")
    track_damage_report("resolved")
    assert sample("uniraum_damage_reports_total", status="resolved") == before + 1


def test_auth_metrics():
    success = sample("uniraum_auth_attempts_total", result="success")
    failure = sample("uniraum_auth_attempts_total", result="failure")
    issued = sample("uniraum_jwt_tokens_issued_total")

    track_auth_attempt(True)
    track_auth_attempt(False)
    track_auth_attempt(False)
    track_jwt_issued()

    assert sample("uniraum_auth_attempts_total", result="success") == success + 1
    assert sample("uniraum_auth_attempts_total", result="failure") == failure + 2
    assert sample("uniraum_jwt_tokens_issued_total") == issued + 1


def test_metrics_collector_records_duration():
    before = sample("uniraum_db_query_duration_seconds_count", query_type="availability")

    with MetricsCollector("availability"):
        pass

    assert sample("uniraum_db_query_duration_seconds_count", query_type="availability") == before + 1


def test_metrics_collector_records_on_error():
    before = sample("uniraum_db_query_duration_seconds_count", query_type="failing")

    with pytest.raises(RuntimeError):
        with MetricsCollector("failing"):
            raise RuntimeError("boom")

    assert sample("uniraum_db_query_duration_seconds_count", query_type="failing") == before + 1


def test_get_metrics_summary():
    summary = get_metrics_summary()
    assert summary["status"] == "healthy"
    assert set(summary["system"]) == {"cpu_percent", "memory_percent", "disk_percent"}


def test_get_metrics_summary_error():
    with patch("shared.monitoring.psutil.cpu_percent", side_effect=OSError("no /proc")):
        summary = get_metrics_summary()
    assert summary["status"] == "error"
    assert "no /proc" in summary["error"]
