"""Shared validation utilities"""

import re

TIME_OF_DAY_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def validate_time_of_day(value: str) -> str:
    """Validate a 24-hour "HH:MM" string"""
    if not value or not TIME_OF_DAY_PATTERN.match(value):
        raise ValueError("Time must use 24-hour HH:MM format")
    return value


def validate_currency(value: str) -> str:
    """Validate and normalize an ISO 4217 currency code"""
    code = (value or "").strip().upper()
    if not CURRENCY_PATTERN.match(code):
        raise ValueError("Currency must be a three-letter code such as USD")
    return code


def validate_weekday(value: str) -> str:
    day = (value or "").strip().lower()
    if day not in WEEKDAYS:
        raise ValueError(f"Unknown day of week: {value}")
    return day
