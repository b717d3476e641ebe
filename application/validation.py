"""
Checkout form checks run before any network call.

Messages are the buyer-facing Portuguese strings rendered next to each field.
"""
from __future__ import annotations

import re
from typing import Optional

from application.dtos.checkout import CheckoutForm
from domain.common.exceptions import CheckoutValidationException


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NON_DIGIT = re.compile(r"\D")


def clean_digits(value: Optional[str]) -> str:
    return _NON_DIGIT.sub("", value or "")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def is_valid_phone(phone: str) -> bool:
    """Brazilian phone: 10 or 11 digits once punctuation is stripped."""
    return len(clean_digits(phone)) in (10, 11)


def _cpf_check_digit(digits: str, weight_start: int) -> int:
    total = sum(int(d) * w for d, w in zip(digits, range(weight_start, 1, -1)))
    remainder = (total * 10) % 11
    return 0 if remainder >= 10 else remainder


def is_valid_cpf(cpf: str) -> bool:
    cleaned = clean_digits(cpf)
    if len(cleaned) != 11:
        return False
    # 000.000.000-00, 111.111.111-11 ... pass the checksum but are not issued
    if cleaned == cleaned[0] * 11:
        return False
    if _cpf_check_digit(cleaned[:9], 10) != int(cleaned[9]):
        return False
    return _cpf_check_digit(cleaned[:10], 11) == int(cleaned[10])


def collect_form_errors(form: CheckoutForm, *, cpf_enabled: bool = False) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not form.name.strip():
        errors["name"] = "Nome é obrigatório"
    if not form.email.strip():
        errors["email"] = "Email é obrigatório"
    elif not is_valid_email(form.email.strip()):
        errors["email"] = "Email inválido"
    if not form.phone.strip():
        errors["phone"] = "Telefone é obrigatório"
    elif not is_valid_phone(form.phone):
        errors["phone"] = "Telefone inválido"
    if cpf_enabled:
        cpf = (form.cpf or "").strip()
        if not cpf:
            errors["cpf"] = "CPF é obrigatório"
        elif not is_valid_cpf(cpf):
            errors["cpf"] = "CPF inválido"
    return errors


def validate_checkout_form(form: CheckoutForm, *, cpf_enabled: bool = False) -> None:
    """Raise CheckoutValidationException carrying every field error at once."""
    errors = collect_form_errors(form, cpf_enabled=cpf_enabled)
    if errors:
        raise CheckoutValidationException(errors)
