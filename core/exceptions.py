"""
Global exception handlers: business errors, request validation, HTTP errors and uncaught exceptions all become the response envelope

The checkout page renders field errors from ``error.details.errors``; gateway errors map to 502,
which the frontend shows as "generate a new PIX".
"""
import traceback
import uuid
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status as http_status

from core.i18n import get_locale, t
from core.logging_config import get_logger
from core.response import error_response
from domain.common.exceptions import BusinessException, GatewayError
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


logger = get_logger(__name__)


class UnauthorizedException(BusinessException):
    """Dashboard token missing or wrong."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            code=BusinessCode.UNAUTHORIZED,
            message=message,
            error_type="Unauthorized",
            message_key="auth.unauthorized",
        )


# business code -> HTTP status (unlisted codes default to 400)
_HTTP_STATUS_BY_CODE: dict[int, int] = {
    BusinessCode.PARAM_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.CONFLICT: http_status.HTTP_409_CONFLICT,
    BusinessCode.UNAUTHORIZED: http_status.HTTP_401_UNAUTHORIZED,
    BusinessCode.FORBIDDEN: http_status.HTTP_403_FORBIDDEN,
    BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    BusinessCode.SERVICE_UNAVAILABLE: http_status.HTTP_503_SERVICE_UNAVAILABLE,
    # gateway
    PaymentCode.PROVIDER_ERROR: http_status.HTTP_502_BAD_GATEWAY,
    PaymentCode.PROVIDER_RECOVERABLE: http_status.HTTP_502_BAD_GATEWAY,
    PaymentCode.TIMEOUT: http_status.HTTP_502_BAD_GATEWAY,
    PaymentCode.WEBHOOK_PAYLOAD_INVALID: http_status.HTTP_400_BAD_REQUEST,
    # checkout / orders
    PaymentCode.CHECKOUT_VALIDATION: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    PaymentCode.ORDER_NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    PaymentCode.ORDER_TRANSITION_INVALID: http_status.HTTP_409_CONFLICT,
    PaymentCode.ORDER_STORE_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    PaymentCode.CATALOG_ITEM_NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    PaymentCode.SESSION_NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    PaymentCode.SESSION_STATE_CONFLICT: http_status.HTTP_409_CONFLICT,
    PaymentCode.NOTIFICATION_FAILED: http_status.HTTP_502_BAD_GATEWAY,
}

_CODE_BY_HTTP_STATUS: dict[int, int] = {
    400: BusinessCode.PARAM_ERROR,
    401: BusinessCode.UNAUTHORIZED,
    403: BusinessCode.FORBIDDEN,
    404: BusinessCode.NOT_FOUND,
    405: BusinessCode.PARAM_ERROR,
    409: BusinessCode.CONFLICT,
    503: BusinessCode.SERVICE_UNAVAILABLE,
}


def business_code_to_http_status(code: int) -> int:
    return _HTTP_STATUS_BY_CODE.get(int(code), http_status.HTTP_400_BAD_REQUEST)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _json(status_code: int, response, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"), headers=headers)


def register_exception_handlers(app: FastAPI):
    """Register the global exception handlers."""

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        request_id = _request_id(request)
        params = exc.format_params if isinstance(exc.format_params, dict) else (exc.details or {})
        response = error_response(
            code=exc.code,
            message=t(exc.message_key or exc.message, **params),
            error_type=exc.error_type,
            details=exc.details,
            field=exc.field,
            request_id=request_id,
            locale=get_locale(),
            message_key=exc.message_key,
        )
        status_code = business_code_to_http_status(exc.code)
        if isinstance(exc, GatewayError):
            logger.warning(
                "gateway_error",
                request_id=request_id,
                provider=exc.provider,
                provider_code=exc.provider_code,
                status_code=exc.status_code,
                error=exc.message,
            )
        elif status_code >= http_status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("business_exception", request_id=request_id, code=int(exc.code), error_type=exc.error_type, error=exc.message)
        headers = {"WWW-Authenticate": "Bearer"} if status_code == http_status.HTTP_401_UNAUTHORIZED else None
        return _json(status_code, response, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder([{k: v for k, v in e.items() if k != "ctx"} for e in exc.errors()])
        first_error = errors[0] if errors else {}
        response = error_response(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=t("validation.failed", reason=first_error.get("msg", "unknown")),
            error_type="ValidationError",
            details={"errors": errors},
            field=".".join(str(loc) for loc in first_error.get("loc", [])[1:]),
            request_id=_request_id(request),
            locale=get_locale(),
            message_key="validation.failed",
        )
        return _json(http_status.HTTP_422_UNPROCESSABLE_ENTITY, response)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        response = error_response(
            code=_CODE_BY_HTTP_STATUS.get(exc.status_code, BusinessCode.SYSTEM_ERROR),
            message=str(exc.detail),
            error_type="HTTPError",
            details={"status_code": exc.status_code},
            request_id=_request_id(request),
            locale=get_locale(),
        )
        return _json(exc.status_code, response, getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        request_id = _request_id(request)
        logger.error("unhandled_exception", request_id=request_id, error=str(exc), exc_info=True)
        details = {"exception": str(exc), "traceback": traceback.format_exc()} if app.debug else None
        response = error_response(
            code=BusinessCode.SYSTEM_ERROR,
            message=t("error.internal"),
            error_type="SystemError",
            details=details,
            request_id=request_id,
            locale=get_locale(),
            message_key="error.internal",
        )
        return _json(http_status.HTTP_500_INTERNAL_SERVER_ERROR, response)
