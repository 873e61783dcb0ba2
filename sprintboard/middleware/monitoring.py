from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from prometheus_client import Counter, Histogram
import time
from typing import Callable

MUTATION_COUNT = Counter(
    'sprintboard_mutations_total',
    'Mutating HTTP requests by route template and status',
    ['method', 'route', 'status']
)

MUTATION_DURATION = Histogram(
    'sprintboard_mutation_duration_seconds',
    'Duration of mutating requests, commit and fanout included',
    ['method', 'route']
)

MUTATING_METHODS = {"POST", "PATCH", "PUT", "DELETE"}


class MonitoringMiddleware(BaseHTTPMiddleware):
    """
    Prometheus metrics for the write path; reads are covered by the instrumentator
    """

    async def dispatch(self, request: Request, call_next: Callable):
        method = request.method
        if method not in MUTATING_METHODS:
            return await call_next(request)

        start_time = time.time()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route = request.scope.get("route")
            route_path = getattr(route, "path", "unmatched")
            MUTATION_COUNT.labels(method=method, route=route_path, status=status_code).inc()
            MUTATION_DURATION.labels(method=method, route=route_path).observe(time.time() - start_time)
