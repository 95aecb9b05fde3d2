import argparse
import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from api import endpoints as endpoints_api
from db.valkey import check_connectivity, create_valkey_client
from services.endpoint_registry import EndpointRegistry

logger = logging.getLogger("canary-registry")


def configure_logging(level: str = "INFO") -> None:
    """Log to stderr; does nothing if logging was already configured"""
    logging.basicConfig(
        stream=sys.stderr,
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
    )


# Logs every request before it is dispatched
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        client = f"{request.client.host}:{request.client.port}" if request.client else "unknown"
        logger.info("%s %s from %s", request.method, request.url.path, client)

        response = await call_next(request)

        if response.status_code == 405:
            logger.info("request from %s rejected: method %s not allowed", client, request.method)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Builds the shared store client, probes it and exposes the registry on app.state.
    Startup fails if the store is unreachable.
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    client = create_valkey_client()
    try:
        await check_connectivity(client)
    except Exception:
        logger.exception("store connectivity check failed")
        await client.aclose()
        raise

    app.state.registry = EndpointRegistry(client)
    logger.info("canary registry ready")
    yield
    await client.aclose()


app = FastAPI(
    title="Canary Registry",
    description="Stores canary endpoint definitions for health checking.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(endpoints_api.router)


@app.get("/health")
def health_check():
    """
    Health check endpoint for deployment monitoring
    """
    return {"status": "healthy", "service": "canary-registry"}


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Canary endpoint registry")
    parser.add_argument("--addr", default="0.0.0.0", help="listen to address")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", 8000)), help="listen on port")
    parser.add_argument("--log-level", default="INFO", help="log level (DEBUG, INFO, WARNING, ...)")
    return parser.parse_args(argv)


if __name__ == "__main__":
    import uvicorn
    args = parse_args()
    configure_logging(args.log_level)
    logger.info("listen to %s:%d", args.addr, args.port)
    uvicorn.run(app, host=args.addr, port=args.port, log_level=args.log_level.lower())
