"""Domain-level business exceptions shared by the domain and infrastructure.

The core layer only maps these to HTTP responses; the domain never imports
from core.
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


class BusinessException(Exception):
    """Root of every business error."""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
        message_key: Optional[str] = None,
        format_params: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        self.message_key = message_key
        self.format_params = format_params
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
        message_key: str | None = None,
        format_params: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
            message_key=message_key or "validation.domain",
            format_params=format_params,
        )


class CheckoutValidationException(BusinessException):
    """Checkout form rejected locally; no network call was made."""

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        first = next(iter(self.errors), None)
        super().__init__(
            code=PaymentCode.CHECKOUT_VALIDATION,
            message="Checkout form is invalid",
            error_type="ValidationError",
            details={"errors": self.errors},
            field=first,
            message_key="checkout.form.invalid",
        )


class GatewayError(BusinessException):
    """Charge creation or status call against the PIX provider failed."""

    def __init__(
        self,
        message: str,
        *,
        provider: str = "openpix",
        provider_code: str | None = None,
        status_code: int | None = None,
        details: Optional[dict] = None,
        code: int = PaymentCode.PROVIDER_ERROR,
        error_type: str = "GatewayError",
    ):
        self.provider = provider
        self.provider_code = provider_code
        self.status_code = status_code
        full_details = {"provider": provider, "provider_code": provider_code, "status_code": status_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=code,
            message=message,
            error_type=error_type,
            details=full_details,
            message_key="gateway.error",
        )


class OrderStoreException(BusinessException):
    """Persistence failure while reading or writing orders."""

    def __init__(self, message: str, *, details: Optional[dict] = None, field: str | None = None):
        super().__init__(
            code=PaymentCode.ORDER_STORE_ERROR,
            message=message,
            error_type="StoreError",
            details=details,
            field=field,
            message_key="order.store.failed",
        )


class NotificationError(BusinessException):
    """Email or attribution relay failed. Never fatal for the caller."""

    def __init__(self, message: str, *, channel: str, status_code: int | None = None, details: Optional[dict] = None):
        self.channel = channel
        self.status_code = status_code
        full_details = {"channel": channel, "status_code": status_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.NOTIFICATION_FAILED,
            message=message,
            error_type="NotificationError",
            details=full_details,
        )


class OrderNotFoundException(BusinessException):
    def __init__(self, *, order_id: Optional[int] = None, correlation_id: Optional[str] = None):
        details = {}
        if order_id is not None:
            details["order_id"] = order_id
        if correlation_id is not None:
            details["correlation_id"] = correlation_id
        super().__init__(
            code=PaymentCode.ORDER_NOT_FOUND,
            message="Order not found",
            error_type="OrderNotFound",
            details=details or None,
            message_key="order.not_found",
        )


class InvalidOrderTransitionException(BusinessException):
    def __init__(self, current: str, target: str, *, correlation_id: Optional[str] = None):
        self.current = current
        self.target = target
        super().__init__(
            code=PaymentCode.ORDER_TRANSITION_INVALID,
            message=f"Order cannot move from {current} to {target}",
            error_type="InvalidOrderTransition",
            details={"current": current, "target": target, "correlation_id": correlation_id},
            field="status",
            message_key="order.transition.invalid",
            format_params={"current": current, "target": target},
        )


class CatalogItemNotFoundException(BusinessException):
    def __init__(self, kind: str, item_id: str):
        super().__init__(
            code=PaymentCode.CATALOG_ITEM_NOT_FOUND,
            message=f"{kind} not found",
            error_type="CatalogItemNotFound",
            details={"kind": kind, "id": item_id},
            message_key="catalog.item.not_found",
            format_params={"kind": kind},
        )


class CheckoutSessionNotFoundException(BusinessException):
    def __init__(self, correlation_id: str):
        super().__init__(
            code=PaymentCode.SESSION_NOT_FOUND,
            message="Checkout session not found",
            error_type="CheckoutSessionNotFound",
            details={"correlation_id": correlation_id},
            message_key="checkout.session.not_found",
        )


class CheckoutSessionStateException(BusinessException):
    def __init__(self, state: str, action: str):
        super().__init__(
            code=PaymentCode.SESSION_STATE_CONFLICT,
            message=f"Cannot {action} while session is {state}",
            error_type="CheckoutSessionStateConflict",
            details={"state": state, "action": action},
            message_key="checkout.session.state_conflict",
        )


class WebhookPayloadError(BusinessException):
    """Inbound provider payload failed boundary validation."""

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(
            code=PaymentCode.WEBHOOK_PAYLOAD_INVALID,
            message=message,
            error_type="WebhookPayloadError",
            details=details,
            message_key="webhook.payload.invalid",
        )
