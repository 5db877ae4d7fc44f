from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from fundflow.infrastructure.config import get_settings
from fundflow.interfaces.api.middleware.rate_limit import RateLimitMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    from fundflow.infrastructure.duckdb_connection import get_connection
    get_connection()  # validates the connection at startup
    yield


app = FastAPI(
    title="Fundflow API",
    debug=get_settings().debug,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url=None,
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next: object) -> Response:
    response = await call_next(request)  # type: ignore[misc]
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response  # type: ignore[return-value]


app.add_middleware(RateLimitMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

from fundflow.interfaces.api.routes.graph_routes import router as graph_router  # noqa: E402
from fundflow.interfaces.api.routes.ledger_routes import router as ledger_router  # noqa: E402
from fundflow.interfaces.api.routes.node_routes import router as node_router  # noqa: E402

app.include_router(graph_router, prefix="/api")
app.include_router(ledger_router, prefix="/api")
app.include_router(node_router, prefix="/api")
