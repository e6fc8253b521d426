"""Request context middleware for logging."""
import json
import re
import time
import uuid
from typing import Any
from typing import Callable
from typing import Optional

from fastapi import Request
from fastapi import Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

# Maximum size for response body logging
MAX_BODY_LOG_SIZE = 10000

SENSITIVE_KEYS = (
    "password",
    "secret",
    "token",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "private_key",
)

SENSITIVE_PATTERNS = (
    r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+",  # JWT
    r"bearer\s+[A-Za-z0-9_-]{20,}",
    r"-----BEGIN[^\n]+PRIVATE KEY-----",
)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to capture and log request context information."""

    async def dispatch(self, request: Request, call_next: Callable) -> Any:
        """
        Capture request context and add it to every log line emitted while handling the request.

        Captures:
        - Request ID (from header or generated)
        - Client IP (forwarded header or direct peer)
        - Admin identity (auth proxy header, bearer token or API key)
        - Console view id (X-View-ID)
        - Request path and method
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        client_ip = self._get_client_ip(request)
        user_identity = self._get_user_identity(request)
        view_id = request.headers.get("X-View-ID", "default")
        request_path = f"{request.method} {request.url.path}"

        with logger.contextualize(
            request_id=request_id,
            client_ip=client_ip,
            user_identity=user_identity,
            view_id=view_id,
            request_path=request_path,
        ):
            start_time = time.time()
            response = await call_next(request)
            duration_ms = (time.time() - start_time) * 1000

            response_body, response = await self._capture_response_body(response)
            if response_body is not None and self._contains_sensitive_information(response_body):
                response_body = None

            logger.info(
                f"{request.method} {request.url.path} - {response.status_code}",
                event_type="http_request",
                http_method=request.method,
                url_path=str(request.url.path),
                url_query=str(request.query_params) if request.query_params else None,
                status_code=response.status_code,
                response_time_ms=round(duration_ms, 2),
                response_body=response_body,
            )

            return response

    async def _capture_response_body(self, response: Response) -> tuple[Optional[Any], Response]:
        """
        Capture the response body without breaking the response.

        Returns:
            Tuple of (parsed body or None, response to send)
        """
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return None, response

        body_bytes = b""
        try:
            async for chunk in response.body_iterator:
                body_bytes += chunk
        except Exception:
            return {"_error": "Failed to read response body"}, response

        new_response = Response(
            content=body_bytes,
            status_code=response.status_code,
            headers=dict(response.headers),
            media_type=response.media_type,
        )

        if not body_bytes:
            return None, new_response

        if len(body_bytes) > MAX_BODY_LOG_SIZE:
            return {
                "_truncated": True,
                "_size": len(body_bytes),
                "_preview": body_bytes[:1000].decode("utf-8", errors="replace"),
            }, new_response

        try:
            return json.loads(body_bytes), new_response
        except json.JSONDecodeError:
            return {"_raw": body_bytes.decode("utf-8", errors="replace")[:1000]}, new_response

    def _get_client_ip(self, request: Request) -> str:
        """Get real client IP address, honouring X-Forwarded-For from a reverse proxy."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # X-Forwarded-For can contain multiple IPs, take the first one
            return forwarded_for.split(",")[0].strip()

        if request.client:
            return request.client.host

        return "unknown"

    def _get_user_identity(self, request: Request) -> str:
        """
        Get the identity of the admin making the request.

        Priority order:
        1. Auth proxy header (X-WEBAUTH-USER)
        2. Bearer token (preview only)
        3. API key header (preview only)
        4. Anonymous
        """
        proxy_user = request.headers.get("X-WEBAUTH-USER")
        if proxy_user:
            return proxy_user

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            return f"bearer_token:{auth_header[7:15]}..."

        api_key = request.headers.get("X-API-Key")
        if api_key:
            key_preview = api_key[:8] + "..." if len(api_key) > 8 else api_key
            return f"api_key:{key_preview}"

        return "anonymous"

    def _contains_sensitive_information(self, body: Any) -> bool:
        """Check whether a response body carries secrets that must not reach the logs."""
        try:
            body_str = json.dumps(body, default=str) if isinstance(body, (dict, list)) else str(body)
        except (TypeError, ValueError):
            return False

        for pattern in SENSITIVE_PATTERNS:
            if re.search(pattern, body_str, re.IGNORECASE):
                return True

        if isinstance(body, dict):
            for key, value in body.items():
                # token_id is an opaque session handle, not a credential
                if not isinstance(key, str) or key.lower() == "token_id":
                    continue
                if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS) and value:
                    value_str = str(value).lower()
                    if "redacted" not in value_str and "***" not in value_str:
                        return True

        return False

