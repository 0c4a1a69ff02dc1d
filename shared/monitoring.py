"""
Prometheus Monitoring & Metrics

This module implements monitoring and metrics collection.

Features:
- Request/response metrics via prometheus-fastapi-instrumentator
- Booking, availability and damage report business metrics
- Authentication metrics
- System resource summary
"""

from prometheus_client import Counter, Histogram, Gauge, Info
from prometheus_fastapi_instrumentator import Instrumentator
from fastapi import FastAPI
import logging
import os
import sys
import time
import psutil

logger = logging.getLogger(__name__)

# Business metrics
bookings_total = Counter(
    'uniraum_bookings_total',
    'Booking lifecycle events',
    ['status']
)

booking_rejections_total = Counter(
    'uniraum_booking_rejections_total',
    'Booking requests rejected by the booking rules',
    ['reason']
)

bookings_active = Gauge(
    'uniraum_bookings_active',
    'Number of confirmed bookings'
)

availability_queries_total = Counter(
    'uniraum_availability_queries_total',
    'Room availability searches'
)

rooms_available = Gauge(
    'uniraum_rooms_available',
    'Rooms returned by the most recent availability search'
)

damage_reports_total = Counter(
    'uniraum_damage_reports_total',
    'Damage report events',
    ['status']
)

# Authentication metrics
auth_attempts_total = Counter(
    'uniraum_auth_attempts_total',
    'Total authentication attempts',
    ['result']
)

jwt_tokens_issued = Counter(
    'uniraum_jwt_tokens_issued',
    'Total JWT tokens issued'
)

# Database metrics
db_query_duration_seconds = Histogram(
    'uniraum_db_query_duration_seconds',
    'Database query duration',
    ['query_type']
)

system_info = Info(
    'uniraum_system',
    'System information'
)


def setup_metrics(app: FastAPI, service_name: str):
    """
    Set up Prometheus metrics for a FastAPI application.

    Request metrics are only collected and exposed on /metrics when
    the ENABLE_METRICS environment variable is "true".

    Example:
        app = FastAPI()
        setup_metrics(app, "bookings")
    """
    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/health"],
        env_var_name="ENABLE_METRICS",
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True,
    )

    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint="/metrics", include_in_schema=False)

    system_info.info({
        'service': service_name,
        'python_version': sys.version.split()[0],
        'environment': os.getenv('ENVIRONMENT', 'development')
    })


def track_booking_created():
    bookings_total.labels(status="confirmed").inc()


def track_booking_cancelled():
    bookings_total.labels(status="cancelled").inc()


def track_booking_deleted():
    bookings_total.labels(status="deleted").inc()


def track_booking_rejected(reason: str):
    """
    Track a rejected booking request.

    Args:
        reason: Error kind, e.g. "conflict" or "validation_error"
    """
    booking_rejections_total.labels(reason=reason).inc()


def update_active_bookings(count: int):
    bookings_active.set(count)


def track_availability_query(result_count: int):
    """
    Track an availability search and the number of free rooms found.
    """
    availability_queries_total.inc()
    rooms_available.set(result_count)


def track_damage_report(status: str):
    damage_reports_total.labels(status=status).inc()


def track_auth_attempt(success: bool):
    """
    Track authentication attempt.

    Args:
        success: Whether authentication was successful
    """
    result = "success" if success else "failure"
    auth_attempts_total.labels(result=result).inc()


def track_jwt_issued():
    jwt_tokens_issued.inc()


def track_db_query(query_type: str, duration: float):
    db_query_duration_seconds.labels(query_type=query_type).observe(duration)


class MetricsCollector:
    """
    Context manager timing a database operation.

    Example:
        with MetricsCollector("availability"):
            rooms = manager.available_rooms(window)
    """

    def __init__(self, query_type: str):
        self.query_type = query_type
        self.start_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            track_db_query(self.query_type, time.perf_counter() - self.start_time)


def get_metrics_summary() -> dict:
    """
    Get summary of system resources.

    Returns:
        dict: CPU, memory and disk usage, or the error that prevented
        reading them
    """
    try:
        return {
            "system": {
                "cpu_percent": psutil.cpu_percent(),
                "memory_percent": psutil.virtual_memory().percent,
                "disk_percent": psutil.disk_usage('/').percent
            },
            "status": "healthy"
        }
    except Exception as e:
        logger.error(f"Could not read system metrics: {e}")
        return {"error": str(e), "status": "error"}
