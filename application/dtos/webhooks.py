"""
OpenPix webhook payloads parsed into tagged variants at the boundary.

Only two shapes reach settlement: ``WebhookIgnored`` and
``WebhookChargeUpdate``. Anything structurally broken raises
WebhookPayloadError before that.
"""
from __future__ import annotations

import json
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from domain.common.exceptions import WebhookPayloadError


CHARGE_COMPLETED_EVENTS = frozenset({"OPENPIX:CHARGE_COMPLETED"})


class OpenPixWebhookCharge(BaseModel):
    model_config = ConfigDict(extra="allow")

    correlationID: str = Field(min_length=1)
    status: str = Field(min_length=1)
    value: Optional[int] = None
    paidAt: Optional[str] = None


class OpenPixWebhookBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    event: Optional[str] = None
    charge: Optional[OpenPixWebhookCharge] = None


class WebhookIgnored(BaseModel):
    kind: Literal["ignored"] = "ignored"
    reason: str
    event: Optional[str] = None


class WebhookChargeUpdate(BaseModel):
    kind: Literal["charge"] = "charge"
    correlation_id: str
    status: str
    event: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == "COMPLETED"


WebhookEvent = Annotated[Union[WebhookIgnored, WebhookChargeUpdate], Field(discriminator="kind")]


def parse_openpix_webhook(raw_body: bytes) -> WebhookEvent:
    """Validate the provider body and classify it."""
    try:
        data = json.loads(raw_body or b"null")
    except (ValueError, UnicodeDecodeError) as exc:
        raise WebhookPayloadError("Webhook body is not valid JSON") from exc
    if not isinstance(data, dict):
        raise WebhookPayloadError("Webhook body must be a JSON object", details={"type": type(data).__name__})

    if data.get("charge") is None:
        return WebhookIgnored(reason="no_charge", event=data.get("event") if isinstance(data.get("event"), str) else None)

    try:
        body = OpenPixWebhookBody.model_validate(data)
    except ValidationError as exc:
        raise WebhookPayloadError(
            "Webhook charge object is malformed",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc

    if body.event is not None and body.event not in CHARGE_COMPLETED_EVENTS:
        return WebhookIgnored(reason="event_type", event=body.event)

    charge = body.charge
    return WebhookChargeUpdate(
        correlation_id=charge.correlationID,
        status=charge.status.upper(),
        event=body.event,
    )
