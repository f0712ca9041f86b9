"""
Lookup Key Validation

Runs at the HTTP boundary, BEFORE the resolver is called.
The resolver assumes its keys are already well-formed.

IMPORTANT: Validation NEVER guesses. "USA" is rejected, not
truncated to "US".
"""

import re

COUNTRY_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")
CURRENCY_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")
MAX_CITY_NAME_LENGTH = 200


class InvalidKeyError(ValueError):
    """A lookup key has the wrong format."""

    def __init__(self, field: str, value: str, message: str):
        self.field = field
        self.value = value
        self.message = message
        super().__init__(message)


def normalize_country_code(raw: str) -> str:
    """
    Upper-case and check an ISO 3166-1 alpha-2 code.

    Raises:
        InvalidKeyError: If the code is not exactly two letters
    """
    code = (raw or "").strip().upper()
    if not COUNTRY_CODE_PATTERN.match(code):
        raise InvalidKeyError(
            "country_code",
            raw,
            "Invalid country code format. Use ISO 3166-1 alpha-2 (e.g., US, DE, ID)",
        )
    return code


def normalize_city_name(raw: str) -> str:
    """
    Trim a city name. The framework has already URL-decoded it once.

    Raises:
        InvalidKeyError: If the name is empty or too long
    """
    name = (raw or "").strip()
    if not name:
        raise InvalidKeyError("city_name", raw, "City name must not be empty")
    if len(name) > MAX_CITY_NAME_LENGTH:
        raise InvalidKeyError(
            "city_name",
            raw,
            f"City name must be at most {MAX_CITY_NAME_LENGTH} characters",
        )
    return name


def normalize_currency_code(raw: str) -> str:
    """
    Upper-case and check an ISO 4217 currency code.

    Raises:
        InvalidKeyError: If the code is not exactly three letters
    """
    code = (raw or "").strip().upper()
    if not CURRENCY_CODE_PATTERN.match(code):
        raise InvalidKeyError(
            "currency_code",
            raw,
            "Invalid currency code format. Use ISO 4217 (e.g., USD, EUR, IDR)",
        )
    return code
