"""Request context middleware for logging."""
import time
import uuid
from typing import Any
from typing import Callable

from fastapi import Request
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to capture request context and log one line per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        """
        Capture request context and add it to every log record emitted while handling the request.

        Captures:
        - Request ID (from header or generated), echoed back in the response
        - Client IP (first X-Forwarded-For hop set by the gateway, or the direct peer)
        - User identity (X-User-Id / X-User-Email forwarded by the gateway)
        - Request method and path
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        client_ip = self._get_client_ip(request)
        user_identity = self._get_user_identity(request)
        request_path = f"{request.method} {request.url.path}"

        with logger.contextualize(
            request_id=request_id,
            client_ip=client_ip,
            user_identity=user_identity,
            request_path=request_path,
        ):
            start_time = time.perf_counter()
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            response.headers[REQUEST_ID_HEADER] = request_id

            logger.info(
                f"{request.method} {request.url.path} - {response.status_code}",
                event_type="http_request",
                http_method=request.method,
                url_path=str(request.url.path),
                url_query=str(request.query_params) if request.query_params else None,
                status_code=response.status_code,
                response_time_ms=round(duration_ms, 2),
                user_agent=request.headers.get("User-Agent", "unknown"),
            )

            return response

    def _get_client_ip(self, request: Request) -> str:
        """Get the original client IP as seen by the gateway."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # X-Forwarded-For can contain multiple IPs, take the first one
            return forwarded_for.split(",")[0].strip()

        if request.client:
            return request.client.host

        return "unknown"

    def _get_user_identity(self, request: Request) -> str:
        """
        Get the caller identity forwarded by the gateway.

        The gateway validates the JWT and forwards the subject in X-User-Id (and the email in
        X-User-Email). Anything else is logged as anonymous.
        """
        user_id = request.headers.get("X-User-Id")
        if user_id:
            email = request.headers.get("X-User-Email")
            return f"{user_id} ({email})" if email else user_id

        return "anonymous"

