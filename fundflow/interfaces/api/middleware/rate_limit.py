from __future__ import annotations

import time
from collections import defaultdict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from fundflow.infrastructure.config import get_settings

# Discovery fans out to many ledger fetches, so it costs more than a plain read.
_COST_BY_PATH_SUFFIX: dict[str, int] = {
    "/graph/discover": 5,
    "/graph/batch": 2,
}


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: object) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._requests: dict[str, list[float]] = defaultdict(list)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        settings = get_settings()

        # 0 = no limit (tests)
        if settings.rate_limit_per_minute == 0:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window = 60.0

        self._requests[client_ip] = [t for t in self._requests[client_ip] if now - t < window]

        cost = next(
            (c for suffix, c in _COST_BY_PATH_SUFFIX.items() if request.url.path.endswith(suffix)),
            1,
        )
        if len(self._requests[client_ip]) + cost > settings.rate_limit_per_minute:
            return Response(
                content='{"detail": "Rate limit exceeded. Try again in one minute."}',
                status_code=429,
                media_type="application/json",
            )

        self._requests[client_ip].extend([now] * cost)
        return await call_next(request)
