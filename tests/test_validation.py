# tests/test_validation.py
from __future__ import annotations

import sys
from pathlib import Path
from datetime import date, timedelta
from typing import Any

# This is a standard way to make the `spmb` directory importable
# without having to install the project in editable mode.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from spmb.form_data_builder import Other
from spmb.validation import (
    required,
    required_choice,
    match_pattern,
    exact_length,
    max_length,
    is_integer_in_range,
    is_within_date_range,
    other_detail_filled,
    NIK_PATTERN,
    PHONE_PATTERN,
    RT_RW_PATTERN,
    POSTAL_CODE_PATTERN,
)

# The validators take the record for context; none of these need one.
RECORD: Any = None

def test_max_length_validator() -> None:
    """Tests the `max_length` validator."""
    validator = max_length(10, "Cannot exceed 10 characters.")

    # --- Passing Cases ---
    is_valid_under, _ = validator("12345", RECORD)
    assert is_valid_under, "Should pass for a string under the limit"

    is_valid_exact, _ = validator("1234567890", RECORD)
    assert is_valid_exact, "Should pass for a string at the exact limit"

    # --- Failing Cases ---
    is_invalid_over, msg = validator("12345678901", RECORD)
    assert not is_invalid_over, "Should fail for a string over the limit"
    assert msg == "Cannot exceed 10 characters."

    # --- Edge Cases ---
    is_valid_empty, _ = validator("", RECORD)
    assert is_valid_empty, "Should pass for an empty string (not its responsibility)"

    is_valid_none, _ = validator(None, RECORD)
    assert is_valid_none, "Should pass for None (not its responsibility)"

def test_required_validator() -> None:
    """Tests the `required` validator for various empty/non-empty cases."""
    validator = required("Kolom wajib diisi")

    # --- Failing Cases ---
    assert not validator(None, RECORD)[0], "Should fail for None"
    assert not validator("", RECORD)[0], "Should fail for empty string"
    assert not validator("   ", RECORD)[0], "Should fail for whitespace-only string"
    assert not validator([], RECORD)[0], "Should fail for an empty multi-select"

    # --- Passing Cases ---
    assert validator("Budi", RECORD)[0], "Should pass for text"
    assert validator(0, RECORD)[0], "Zero is a value, not an empty field"
    assert validator(["jalan_kaki"], RECORD)[0], "Should pass for a non-empty list"

def test_required_choice_accepts_other() -> None:
    validator = required_choice("Pilih salah satu")
    assert not validator(None, RECORD)[0]
    assert not validator("", RECORD)[0]
    assert validator("Islam", RECORD)[0]
    assert validator(Other("Kepercayaan"), RECORD)[0], "An Other selection counts as a choice"

def test_nik_pattern_and_length() -> None:
    validator = match_pattern(NIK_PATTERN, "NIK harus 16 digit angka")
    length = exact_length(16, "NIK harus 16 digit angka")

    # --- Passing Cases ---
    assert validator("3524123456789001", RECORD)[0]
    assert length("3524123456789001", RECORD)[0]

    # --- Failing Cases ---
    assert not validator("352412345678900", RECORD)[0], "15 digits is too short"
    assert not length("352412345678900", RECORD)[0]
    assert not validator("35241234567890AB", RECORD)[0], "Letters are not allowed"

    # --- Edge Cases ---
    assert validator("", RECORD)[0], "Optional NIK left empty passes"
    assert not validator("3524123456789001\n", RECORD)[0], "A trailing newline is not a digit"
    assert not validator(" 3524123456789001 ", RECORD)[0], "Surrounding spaces are not trimmed away"
    assert not length(" 3524123456780002 ", RECORD)[0]

def test_only_ascii_digits_count() -> None:
    nik = match_pattern(NIK_PATTERN, "NIK harus 16 digit angka")
    phone = match_pattern(PHONE_PATTERN, "Nomor HP tidak valid")
    year = is_integer_in_range(1900, 2025, "Di luar rentang", "Harus angka")

    arabic_indic = "\u0663\u0665\u0662\u0664" * 4
    full_width = "\uff13\uff15\uff12\uff14" * 4
    assert not nik(arabic_indic, RECORD)[0]
    assert not nik(full_width, RECORD)[0]
    assert not phone("08\u0661\u0662\u0663\u0664\u0665\u0666\u0667\u0668", RECORD)[0]
    ok, msg = year("\u0661\u0669\u0668\u0660", RECORD)
    assert not ok and msg == "Harus angka"

def test_phone_pattern() -> None:
    validator = match_pattern(PHONE_PATTERN, "Nomor HP tidak valid")

    # --- Passing Cases ---
    for phone in ("81234567890", "081234567890", "6281234567890", "+6281234567890"):
        assert validator(phone, RECORD)[0], f"{phone} should be accepted"

    # --- Failing Cases ---
    for phone in ("12345", "0212345678", "8123", "08123456789012345", "0812-abc"):
        assert not validator(phone, RECORD)[0], f"{phone} should be rejected"

def test_rt_rw_and_postal_code_patterns() -> None:
    rt_rw = match_pattern(RT_RW_PATTERN, "Format RT/RW salah")
    postal = match_pattern(POSTAL_CODE_PATTERN, "Kode pos harus 5 digit")

    assert rt_rw("001/002", RECORD)[0]
    assert rt_rw("1/2", RECORD)[0]
    assert not rt_rw("001-002", RECORD)[0]
    assert not rt_rw("0001/002", RECORD)[0]

    assert postal("62271", RECORD)[0]
    assert not postal("6227", RECORD)[0]
    assert not postal("6227a", RECORD)[0]

def test_is_integer_in_range() -> None:
    validator = is_integer_in_range(1900, 2025, "Di luar rentang", "Harus angka")

    # --- Passing Cases ---
    assert validator(1980, RECORD)[0]
    assert validator("1980", RECORD)[0], "Numeric text is accepted"
    assert validator(1980.0, RECORD)[0], "Whole floats from number inputs are accepted"
    assert validator(None, RECORD)[0], "Optional field left empty passes"

    # --- Failing Cases ---
    ok, msg = validator(1899, RECORD)
    assert not ok and msg == "Di luar rentang"
    ok, msg = validator("19a0", RECORD)
    assert not ok and msg == "Harus angka"
    assert not validator(1980.5, RECORD)[0]
    assert not validator(True, RECORD)[0], "Booleans are not numbers here"

def test_is_integer_in_range_open_upper_bound() -> None:
    validator = is_integer_in_range(0, None, "Minimal 0")
    assert validator(0, RECORD)[0]
    assert validator(12, RECORD)[0]
    assert not validator(-1, RECORD)[0]

def test_is_within_date_range_validator() -> None:
    """Birth dates must be real dd/mm/yyyy dates between 2000-01-01 and today."""
    validator = is_within_date_range(message="Tanggal lahir di luar rentang")

    # --- Passing Cases ---
    assert validator("01/01/2000", RECORD)[0], "The lower bound itself is allowed"
    assert validator("05/03/2018", RECORD)[0]
    assert validator(date.today().strftime('%d/%m/%Y'), RECORD)[0], "Today is allowed"

    # --- Failing Cases ---
    ok, msg = validator("31/12/1999", RECORD)
    assert not ok and msg == "Tanggal lahir di luar rentang"
    tomorrow = (date.today() + timedelta(days=1)).strftime('%d/%m/%Y')
    assert not validator(tomorrow, RECORD)[0], "Future dates are rejected"

    ok, msg = validator("30/02/2018", RECORD)
    assert not ok and "Format tanggal" in msg, "Impossible dates are a format error"
    ok, msg = validator("2018-03-05", RECORD)
    assert not ok and "Format tanggal" in msg

    # --- Edge Cases ---
    assert validator(None, RECORD)[0], "Emptiness is the job of required()"

def test_other_detail_filled() -> None:
    validator = other_detail_filled("Detail wajib diisi")

    # --- Passing Cases ---
    assert validator("Islam", RECORD)[0], "Listed options need no detail"
    assert validator(Other("Kepercayaan"), RECORD)[0]
    assert validator(["jalan_kaki", Other("Sepeda")], RECORD)[0]
    assert validator(None, RECORD)[0]

    # --- Failing Cases ---
    assert not validator(Other(""), RECORD)[0]
    assert not validator(Other("   "), RECORD)[0], "Whitespace is not a detail"
    assert not validator(["jalan_kaki", Other()], RECORD)[0]
