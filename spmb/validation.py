# validation.py
from __future__ import annotations
import re
from re import Pattern
from typing import Any
from collections.abc import Callable
from datetime import date, datetime

from .form_data_builder import Other

# --- Type Aliases ---
ValidationResult = tuple[bool, str]
# The validator gets the value and the whole record for context
ValidatorFunc = Callable[[Any | None, Any], ValidationResult]

# --- Regex Patterns (centralized) ---
NIK_PATTERN: Pattern[str] = re.compile(r'^[0-9]{16}$')
NISN_PATTERN: Pattern[str] = re.compile(r'^[0-9]{10}$')
NUMERIC_PATTERN: Pattern[str] = re.compile(r'^[0-9]+$')
POSTAL_CODE_PATTERN: Pattern[str] = re.compile(r'^[0-9]{5}$')
RT_RW_PATTERN: Pattern[str] = re.compile(r'^[0-9]{1,3}/[0-9]{1,3}$')
# Mobile numbers, with or without the +62 / 62 / 0 prefix
PHONE_PATTERN: Pattern[str] = re.compile(r'^(?:\+62|62|0)?8[0-9]{7,11}$')
DATE_FORMAT_STORAGE: str = '%d/%m/%Y'

# ===================================================================
# GENERIC VALIDATOR GENERATORS (Our Reusable Building Blocks)
# ===================================================================

def required(message: str = "Kolom ini wajib diisi.") -> ValidatorFunc:
    """Ensures a value is not None, not an empty string, and not just whitespace."""
    def validator(value: Any | None, record: Any) -> ValidationResult:
        if value is None:
            return False, message
        if isinstance(value, str) and not value.strip():
            return False, message
        if isinstance(value, (list, dict)) and not value: # For multi-select fields
            return False, message
        return True, ""
    return validator

def required_choice(message: str = "Silakan pilih salah satu.") -> ValidatorFunc:
    """Ensures a value from a select/radio is not None or empty/whitespace."""
    def validator(value: Any | None, record: Any) -> ValidationResult:
        if value is None or (isinstance(value, str) and not value.strip()):
            return False, message
        return True, ""
    return validator

def match_pattern(pattern: Pattern[str], message: str) -> ValidatorFunc:
    """Ensures a string value matches a regex pattern."""
    def validator(value: Any | None, record: Any) -> ValidationResult:
        # Empty values pass here; chain with required() for mandatory fields.
        if not value or not isinstance(value, str):
            return True, ""
        if not pattern.fullmatch(value):
            return False, message
        return True, ""
    return validator

def exact_length(length: int, message: str) -> ValidatorFunc:
    """Ensures a non-empty string has exactly `length` characters."""
    def validator(value: Any | None, record: Any) -> ValidationResult:
        if not value or not isinstance(value, str):
            return True, ""
        if len(value) != length:
            return False, message
        return True, ""
    return validator

def max_length(length: int, message: str) -> ValidatorFunc:
    """Ensures a string is not longer than `length` characters."""
    def validator(value: Any | None, record: Any) -> ValidationResult:
        if not value or not isinstance(value, str):
            return True, ""
        if len(value) > length:
            return False, message
        return True, ""
    return validator

def is_integer_in_range(
    min_value: int | None, max_value: int | None,
    message: str, type_message: str = "Harus berupa angka."
) -> ValidatorFunc:
    """Ensures an optional whole number lies within [min_value, max_value]."""
    def validator(value: Any | None, record: Any) -> ValidationResult:
        if value is None or value == '':
            return True, ""
        if isinstance(value, bool):
            return False, type_message
        if isinstance(value, str):
            if not NUMERIC_PATTERN.fullmatch(value):
                return False, type_message
            value = int(value)
        if isinstance(value, float):
            if not value.is_integer():
                return False, type_message
            value = int(value)
        if not isinstance(value, int):
            return False, type_message
        if (min_value is not None and value < min_value) or \
           (max_value is not None and value > max_value):
            return False, message
        return True, ""
    return validator

def is_within_date_range(
    min_date: date | None = date(2000, 1, 1), max_date: date | None = None,
    message: str = "Tanggal di luar rentang yang diizinkan."
) -> ValidatorFunc:
    """Ensures a dd/mm/yyyy date string is a real date within min/max (max defaults to today)."""
    def validator(value: str | None, record: Any) -> ValidationResult:
        if not value:
            return True, ''
        try:
            dt_object = datetime.strptime(value, DATE_FORMAT_STORAGE).date()
        except (ValueError, TypeError):
            return False, "Format tanggal tidak valid (dd/mm/yyyy)."
        upper = max_date or date.today()
        if (min_date and dt_object < min_date) or dt_object > upper:
            return False, message
        return True, ''
    return validator

def other_detail_filled(message: str) -> ValidatorFunc:
    """
    Ensures a 'Lainnya' selection carries its detail text. Works on single
    choices and on multi-select lists that may contain an Other entry.
    """
    def validator(value: Any | None, record: Any) -> ValidationResult:
        candidates = value if isinstance(value, list) else [value]
        for item in candidates:
            if isinstance(item, Other) and not item.is_filled():
                return False, message
        return True, ""
    return validator
