"""
Request/response logging middleware

The checkout form and webhooks both carry buyer PII (email, phone, CPF),
so bodies are masked before logging; browser session polls log at debug.
"""
import json
import re
import time
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.config import settings
from core.logging_config import get_logger, mask_email, mask_phone


logger = get_logger(__name__)

_SESSION_READ = re.compile(r"^/api/v1/checkout/sessions/[^/]+$")


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Request logging middleware

    - request_started / request_completed with duration and status code
    - POST/PUT/PATCH bodies logged behind a switch, with PII masked
    - X-Process-Time response header
    """

    SKIP_PATHS = {"/health", "/metrics", "/docs", "/redoc", "/openapi.json"}

    # hidden entirely
    SECRET_FIELDS = {"cpf", "document", "token", "secret", "api_key", "api_token", "app_id", "authorization"}
    # partially kept for troubleshooting
    EMAIL_FIELDS = {"email", "to"}
    PHONE_FIELDS = {"phone", "cellphone"}

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.enable_body_log_default: bool = settings.LOG_REQUEST_BODY_ENABLE_BY_DEFAULT
        self.max_body_log_bytes: int = settings.LOG_REQUEST_BODY_MAX_BYTES

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in self.SKIP_PATHS:
            return await call_next(request)

        quiet = request.method == "GET" and bool(_SESSION_READ.match(path))
        start_time = time.perf_counter()
        request_info = await self._request_info(request)
        if not quiet:
            logger.info("request_started", **request_info)

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                duration=round(time.perf_counter() - start_time, 4),
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
                **request_info,
            )
            raise

        duration = time.perf_counter() - start_time
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        self._log_response(response, duration, request_info, quiet=quiet)
        return response

    async def _request_info(self, request: Request) -> dict:
        info: dict[str, Any] = {"method": request.method, "path": request.url.path}
        if request.query_params:
            info["query_params"] = self.sanitize(dict(request.query_params))

        if request.method in ("POST", "PUT", "PATCH") and self._should_log_body(request):
            body = await self._body_snippet(request)
            if body is not None:
                info["body"] = body

        user_agent = request.headers.get("User-Agent")
        if user_agent:
            info["user_agent"] = user_agent
        return info

    def _should_log_body(self, request: Request) -> bool:
        # X-Log-Body: true/false overrides the default
        header = (request.headers.get("X-Log-Body") or "").lower()
        if header in {"true", "1", "yes"}:
            return True
        if header in {"false", "0", "no"}:
            return False
        return bool(self.enable_body_log_default and settings.DEBUG)

    async def _body_snippet(self, request: Request) -> Any:
        body = await request.body()
        if not body:
            return None
        text = body[: self.max_body_log_bytes].decode("utf-8", errors="ignore")
        if "application/json" not in request.headers.get("content-type", "").lower():
            return {"bytes": len(body)}
        try:
            parsed = json.loads(text)
        except ValueError:
            # truncated or invalid JSON: length only
            return {"bytes": len(body)}
        return self.sanitize(parsed)

    @classmethod
    def sanitize(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: cls._sanitize_field(k, v) for k, v in data.items()}
        if isinstance(data, list):
            return [cls.sanitize(v) for v in data]
        return data

    @classmethod
    def _sanitize_field(cls, key: str, value: Any) -> Any:
        name = str(key).lower()
        if name in cls.SECRET_FIELDS:
            return "***"
        if isinstance(value, str):
            if name in cls.EMAIL_FIELDS:
                return mask_email(value)
            if name in cls.PHONE_FIELDS:
                return mask_phone(value)
        return cls.sanitize(value)

    def _log_response(self, response: Response, duration: float, request_info: dict, *, quiet: bool = False):
        status_code = response.status_code
        log_data = {"status_code": status_code, "duration": round(duration, 4), **request_info}

        if status_code >= 500:
            logger.error("request_server_error", **log_data)
        elif status_code >= 400:
            logger.warning("request_client_error", **log_data)
        elif quiet:
            logger.debug("request_completed", **log_data)
        else:
            logger.info("request_completed", **log_data)
