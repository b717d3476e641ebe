from __future__ import annotations

import gettext
from contextvars import ContextVar
from pathlib import Path

import structlog

_current_locale: ContextVar[str] = ContextVar("current_locale", default="en")
_translators: dict[str, gettext.NullTranslations] = {}
_logger = structlog.get_logger(__name__)

# Built-in English texts, used when no compiled catalog provides the key
DEFAULT_MESSAGES: dict[str, str] = {
    "welcome": "SellPay checkout API",
    "health.ok": "Service is healthy",
    "error.internal": "Internal server error",
    "validation.failed": "Validation failed: {reason}",
    "validation.domain": "Invalid value",
    "auth.unauthorized": "Unauthorized",
    "checkout.form.invalid": "Please review the highlighted fields",
    "checkout.offer.loaded": "Checkout offer loaded",
    "checkout.session.created": "PIX charge created",
    "checkout.session.state": "Checkout session state",
    "checkout.session.closed": "Checkout session closed",
    "checkout.session.not_found": "Checkout session not found",
    "checkout.session.state_conflict": "Checkout session is not accepting this action",
    "gateway.error": "Could not reach the payment provider, please try again",
    "order.not_found": "Order not found",
    "order.transition.invalid": "Order cannot move from {current} to {target}",
    "order.store.failed": "Could not save the order, please try again",
    "order.list": "Orders",
    "order.detail": "Order",
    "order.refunded": "Order refunded",
    "order.recovery_email.sent": "Recovery email dispatched",
    "order.recovery_email.failed": "Recovery email could not be delivered",
    "order.confirmation": "Order confirmed",
    "catalog.item.not_found": "{kind} not found",
    "catalog.saved": "Saved",
    "catalog.deleted": "Deleted",
    "catalog.list": "Items",
    "finance.balance": "Account balance",
    "finance.withdraw.requested": "Withdraw requested",
    "webhook.payload.invalid": "Malformed webhook payload",
}

# Buyer-facing texts for the Brazilian checkout; other keys fall back to English
PT_BR_MESSAGES: dict[str, str] = {
    "error.internal": "Erro interno, tente novamente",
    "validation.failed": "Dados inválidos: {reason}",
    "checkout.form.invalid": "Verifique os campos destacados",
    "checkout.offer.loaded": "Oferta carregada",
    "checkout.session.created": "PIX gerado",
    "checkout.session.state": "Status do pagamento",
    "checkout.session.closed": "Sessão encerrada",
    "checkout.session.not_found": "Sessão de pagamento não encontrada",
    "checkout.session.state_conflict": "Esta ação não está disponível agora",
    "gateway.error": "Erro ao gerar PIX. Tente novamente.",
    "order.not_found": "Pedido não encontrado",
    "order.confirmation": "Pagamento confirmado",
    "catalog.item.not_found": "Produto não encontrado",
}

SUPPORTED_LOCALES = ("en", "pt_BR")

_BUILTIN: dict[str, dict[str, str]] = {"en": DEFAULT_MESSAGES, "pt_BR": PT_BR_MESSAGES}


def set_locale(locale: str) -> None:
    """Set current request locale (fallback to 'en')."""
    _current_locale.set(locale or "en")


def get_locale() -> str:
    """Get current request locale (default 'en')."""
    return _current_locale.get()


def _get_translator(locale: str) -> gettext.NullTranslations:
    tr = _translators.get(locale)
    if tr is not None:
        return tr
    localedir = Path(__file__).resolve().parent.parent / "locales"
    tr = gettext.translation(
        domain="messages",
        localedir=str(localedir),
        languages=[locale],
        fallback=True,
    )
    _translators[locale] = tr
    return tr


def t(msgid: str, **params) -> str:
    """Translate msgid using current locale and format with params.

    Lookup order: compiled catalog for the locale, the built-in texts for
    the locale, the English built-ins, then the msgid itself.
    """
    locale = get_locale()
    text = _get_translator(locale).gettext(msgid)
    if text == msgid:
        text = _BUILTIN.get(locale, {}).get(msgid) or DEFAULT_MESSAGES.get(msgid, msgid)
    if not params:
        return text
    try:
        return text.format(**params)
    except (KeyError, IndexError, ValueError) as exc:
        _logger.warning("i18n_format_failed", msgid=msgid, params=list(params.keys()), error=str(exc))
        return text
