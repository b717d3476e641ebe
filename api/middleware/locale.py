"""
Locale middleware.

Buyers reach the checkout from Brazilian storefronts, so Portuguese tags
resolve to ``pt_BR``; anything else falls back to English.
Priority: ``?lang=`` > ``X-Lang`` > ``Accept-Language`` > ``en``.
"""
from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from core.i18n import SUPPORTED_LOCALES, set_locale


def best_language(accept_language: str) -> str:
    """Highest-q tag of an Accept-Language header ('pt-BR,pt;q=0.9' -> 'pt-BR')."""
    best, best_q = "", -1.0
    for part in accept_language.split(","):
        tag, _, params = part.strip().partition(";")
        if not tag:
            continue
        q = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                q = float(params[2:])
            except ValueError:
                q = 0.0
        if q > best_q:
            best, best_q = tag.strip(), q
    return best or "en"


def normalize_locale(tag: str) -> str:
    lang = (tag or "").replace("_", "-").lower()
    if lang == "pt" or lang.startswith("pt-"):
        return "pt_BR"
    if lang in SUPPORTED_LOCALES:
        return lang
    return "en"


class LocaleMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        tag = request.query_params.get("lang") or request.headers.get("X-Lang")
        if not tag:
            tag = best_language(request.headers.get("Accept-Language", ""))
        locale = normalize_locale(tag)
        set_locale(locale)
        request.state.locale = locale
        return await call_next(request)
