import time
import uuid
import logging
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from app.config import get_settings

logger = logging.getLogger("app.requests")


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Tag every response with a request id and log method, path, status and duration."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        response: Response = await call_next(request)

        duration = round((time.perf_counter() - start_time) * 1000, 2)
        response.headers["X-Request-Id"] = request_id
        logger.info("%s %s %s %sms", request.method, request.url.path, response.status_code, duration)
        return response


def setup_middleware(app: FastAPI) -> None:
    settings = get_settings()
    # Allow all origins in dev mode, specific origins in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.DEV_MODE else settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLogMiddleware)
