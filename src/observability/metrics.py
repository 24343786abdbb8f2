from __future__ import annotations

from flask import Blueprint, Response
from prometheus_client import Counter, Histogram, generate_latest

metrics_blueprint = Blueprint("metrics_bp", __name__)

CONTENT_TYPE_LATEST = "text/plain; version=0.0.4; charset=utf-8"

PROVIDER_REQUESTS = Counter(
    "musicclient_provider_requests_total",
    "Requests issued to the Spotify Web API, by outcome.",
    ["outcome"],
)
PROVIDER_LATENCY = Histogram(
    "musicclient_provider_request_seconds",
    "Latency of individual Spotify Web API requests.",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, float("inf")),
)
TOKEN_REFRESHES = Counter(
    "musicclient_token_refresh_total",
    "Refresh-token grants attempted, by outcome.",
    ["outcome"],
)
PLAY_HISTORY_WRITES = Counter(
    "musicclient_play_history_total",
    "Play-history submissions, by whether a row was written.",
    ["result"],
)


def record_provider_request(outcome: str, duration_seconds: float | None = None) -> None:
    PROVIDER_REQUESTS.labels(outcome=outcome).inc()
    if duration_seconds is not None:
        PROVIDER_LATENCY.observe(duration_seconds)


def record_token_refresh(outcome: str) -> None:
    TOKEN_REFRESHES.labels(outcome=outcome).inc()


def record_play_history(recorded: bool) -> None:
    PLAY_HISTORY_WRITES.labels(result="recorded" if recorded else "deduplicated").inc()


@metrics_blueprint.route("/metrics")
def metrics_endpoint() -> Response:
    return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)
