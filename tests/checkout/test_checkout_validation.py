import pytest

from application.dtos.checkout import CheckoutForm
from application.validation import (
    clean_digits,
    collect_form_errors,
    is_valid_cpf,
    is_valid_email,
    is_valid_phone,
    validate_checkout_form,
)
from domain.common.exceptions import CheckoutValidationException


@pytest.mark.parametrize("email", ["maria@example.com", "a.b+c@sub.domain.com.br"])
def test_valid_emails(email):
    assert is_valid_email(email)


@pytest.mark.parametrize("email", ["", "maria", "maria@", "maria@example", "ma ria@example.com"])
def test_invalid_emails(email):
    assert not is_valid_email(email)


@pytest.mark.parametrize(
    "phone,expected",
    [("(11) 98765-4321", True), ("1133334444", True), ("98765-4321", False), ("+55 11 98765-4321", False)],
)
def test_phone_digit_count(phone, expected):
    assert is_valid_phone(phone) is expected


def test_cpf_checksum():
    assert is_valid_cpf("529.982.247-25")
    assert is_valid_cpf("52998224725")
    assert not is_valid_cpf("529.982.247-26")
    assert not is_valid_cpf("111.111.111-11")
    assert not is_valid_cpf("1234567890")


def test_clean_digits():
    assert clean_digits("(11) 98765-4321") == "11987654321"
    assert clean_digits(None) == ""


def test_all_errors_reported_together():
    errors = collect_form_errors(CheckoutForm(name=" ", email="bad", phone="123"))

    assert errors == {
        "name": "Nome é obrigatório",
        "email": "Email inválido",
        "phone": "Telefone inválido",
    }


def test_cpf_only_checked_when_enabled():
    form = CheckoutForm(name="Maria", email="maria@example.com", phone="11987654321")

    assert collect_form_errors(form) == {}
    assert collect_form_errors(form, cpf_enabled=True) == {"cpf": "CPF é obrigatório"}

    form.cpf = "123.456.789-00"
    assert collect_form_errors(form, cpf_enabled=True) == {"cpf": "CPF inválido"}


def test_validate_raises_with_field_errors():
    with pytest.raises(CheckoutValidationException) as exc_info:
        validate_checkout_form(CheckoutForm(name="Maria", email="", phone="11987654321"))

    exc = exc_info.value
    assert exc.errors == {"email": "Email é obrigatório"}
    assert exc.field == "email"
    assert exc.details == {"errors": {"email": "Email é obrigatório"}}
