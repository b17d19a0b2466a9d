"""
Local gateway emulator.

An in-memory stand-in for a FairOS-dfs gateway and a Lighthouse node, for
trying the client without an account and for integration tests.
"""

import logging
from typing import Dict, Iterable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..core.models import HealthCheckResponse
from .routes import dfs_router, lighthouse_router
from .store import GatewayStore


logger = logging.getLogger(__name__)


def create_app(store: Optional[GatewayStore] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="dstore gateway emulator",
        description="""
        In-memory storage gateway speaking two dialects:

        - **dfs**: `POST /v2/user/login` sets a session cookie, pods live under
          `/v1/pod/*`, files under `/v1/file/*`.
        - **lighthouse**: `POST /api/v0/add` with `Authorization: Bearer <key>`,
          `GET /api/lighthouse/file_info?cid=`, `GET /ipfs/<cid>`.

        Every failure answers `{"message": "..."}`.
        """,
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )
    app.state.store = store or GatewayStore()

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse({"message": str(exc.detail)}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        return JSONResponse({"message": f"invalid request: {fields}"}, status_code=400)

    app.include_router(dfs_router)
    app.include_router(lighthouse_router)

    @app.get("/health", response_model=HealthCheckResponse, tags=["Health"])
    async def health_check() -> HealthCheckResponse:
        """Health check endpoint."""
        return HealthCheckResponse(status="healthy", version=__version__)

    return app


def parse_users(values: Iterable[str]) -> Dict[str, str]:
    """Turn ``name:password`` strings into a user table."""
    users = {}
    for value in values:
        name, sep, password = value.partition(":")
        if not sep or not name:
            raise ValueError(f"Expected name:password, got {value!r}")
        users[name] = password
    return users


def main() -> None:
    """Main entry point for the emulator."""
    import argparse

    parser = argparse.ArgumentParser(description="dstore gateway emulator")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=9090, help="Port to bind to")
    parser.add_argument(
        "--user", action="append", default=[], help="Account as name:password (repeatable)"
    )
    parser.add_argument(
        "--api-key", action="append", default=[], help="Accepted bearer key (repeatable)"
    )
    parser.add_argument(
        "--no-content-length",
        action="store_true",
        help="Stream downloads without a Content-Length header",
    )

    args = parser.parse_args()

    try:
        users = parse_users(args.user)
    except ValueError as e:
        parser.error(str(e))

    store = GatewayStore(
        users=users, api_keys=args.api_key, advertise_length=not args.no_content_length
    )
    logger.info(f"Starting emulator on {args.host}:{args.port} with {len(users)} users")
    uvicorn.run(create_app(store), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
