"""
Factory for PIX gateway clients.
"""
from __future__ import annotations

from typing import Optional

from application.ports.payment_gateway import PixGateway


def get_pix_gateway(provider: Optional[str] = None) -> PixGateway:
    name = (provider or "openpix").lower()
    if name in {"openpix", "woovi"}:
        from .openpix_client import OpenPixClient
        return OpenPixClient()
    raise ValueError(f"Unsupported payment provider: {name}")
