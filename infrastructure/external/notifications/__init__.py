"""
Notification channel clients: transactional email (Resend) and attribution relay (Utmify)
"""
from __future__ import annotations

from application.ports.notifications import AttributionSender, EmailSender


def get_email_sender() -> EmailSender:
    from .resend_client import ResendEmailClient
    return ResendEmailClient()


def get_attribution_sender() -> AttributionSender:
    from .utmify_client import UtmifyClient
    return UtmifyClient()
