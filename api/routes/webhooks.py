"""
Provider webhook routes.

The provider, not a browser, reads these answers, so bodies stay bare JSON
(``{"status": ...}`` / ``{"error": ...}``) instead of the response envelope.
"""
from __future__ import annotations

import ipaddress
from typing import Iterable, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.dependencies import get_settlement_service
from application.services.settlement_service import SettlementService
from core.logging_config import get_logger
from core.settings import integration_settings
from domain.common.exceptions import WebhookPayloadError


router = APIRouter(prefix="/webhooks", tags=["Webhooks"])
logger = get_logger(__name__)

HEALTH_BODY = {"status": "ok", "webhook": "sellpay-woovi"}


def ip_allowed(remote_ip: Optional[str], allowlist: Iterable[str]) -> bool:
    """Exact IPs or CIDR ranges; an empty allowlist admits everyone."""
    entries = list(allowlist or [])
    if not entries:
        return True
    if not remote_ip:
        return False
    try:
        rip = ipaddress.ip_address(remote_ip)
    except ValueError:
        return False
    for entry in entries:
        try:
            if "/" in entry:
                if rip in ipaddress.ip_network(entry, strict=False):
                    return True
            elif rip == ipaddress.ip_address(entry):
                return True
        except ValueError:
            continue
    return False


@router.api_route("/openpix", methods=["GET", "OPTIONS"], include_in_schema=False)
async def openpix_webhook_probe():
    """Provider registration probe."""
    return JSONResponse(HEALTH_BODY)


@router.post("/openpix", summary="OpenPix charge webhook")
async def openpix_webhook(
    request: Request,
    service: SettlementService = Depends(get_settlement_service),
):
    remote_ip = request.client.host if request.client else None
    if not ip_allowed(remote_ip, integration_settings.webhook.ip_allowlist or []):
        logger.warning("webhook_ip_not_allowed", remote_ip=remote_ip)
        return JSONResponse({"error": "Forbidden"}, status_code=403)

    raw_body = await request.body()
    try:
        result = await service.handle_webhook(raw_body)
    except WebhookPayloadError as exc:
        logger.warning("webhook_payload_invalid", error=exc.message)
        return JSONResponse({"error": exc.message}, status_code=400)
    return JSONResponse(result.body, status_code=result.status_code)
