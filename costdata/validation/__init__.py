"""Validation package."""

from costdata.validation.validator import (
    InvalidKeyError,
    normalize_city_name,
    normalize_country_code,
    normalize_currency_code,
)

__all__ = [
    "InvalidKeyError",
    "normalize_city_name",
    "normalize_country_code",
    "normalize_currency_code",
]
