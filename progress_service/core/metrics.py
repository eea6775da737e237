"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own a
behavior import the metric and increment it at the point of action.

HTTP metrics are labelled by ROUTE TEMPLATE (``/v1/progress/{lesson_id}``),
not by raw path.  Lesson and user ids are UUIDs, so labelling by raw path
would create one time series per id and grow without bound.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, route, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Progress and gamification
# ---------------------------------------------------------------------------

WATCH_SESSIONS = Counter(
    "watch_sessions_total",
    "Watch sessions opened and closed",
    ["event"],  # started|ended
)

LESSONS_COMPLETED = Counter(
    "lessons_completed_total",
    "First-time lesson completions",
)

POINTS_AWARDED = Counter(
    "points_awarded_total",
    "Points credited to learner balances",
)

ACHIEVEMENTS_UNLOCKED = Counter(
    "achievements_unlocked_total",
    "Achievements unlocked (duplicates are not counted)",
    ["scope", "type"],  # scope: lesson|profile
)

LEVEL_UPS = Counter(
    "level_ups_total",
    "Learner level increases",
)

STATISTICS_CACHE = Counter(
    "statistics_cache_total",
    "Statistics report cache lookups by result",
    ["result"],  # hit|miss
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # user|ip
)

RATE_LIMIT_EVICTIONS = Counter(
    "rate_limit_evictions_total",
    "In-memory rate-limit buckets evicted to stay within capacity",
)
