"""
Business codes returned in the ``code`` field of every envelope.

Generic codes live here; checkout, order and provider codes live in
``shared.codes.payment_codes``.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    SUCCESS = 0

    # 1xxxx request
    PARAM_ERROR = 10000
    PARAM_VALIDATION_ERROR = 10003

    # 2xxxx resource
    NOT_FOUND = 20006
    CONFLICT = 20007

    # 3xxxx dashboard access
    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    # 4xxxx system
    SYSTEM_ERROR = 40000
    SERVICE_UNAVAILABLE = 40003


__all__ = ["BusinessCode"]
