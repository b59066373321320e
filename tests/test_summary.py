# tests/test_summary.py
from __future__ import annotations

import sys
import json
from pathlib import Path
from typing import Any

# Make the `spmb` directory importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from spmb.form_data_builder import RegistrationRecord, StudentData, ParentData, GuardianData, Other
from spmb.summary import (
    save_for_print, load_for_print, load_region_names, build_summary,
    format_date_id, format_phone, format_address, format_transport, parent_rows,
)
from spmb.utils import PRINT_SLOT_KEY

REGION_NAMES: dict[str, str] = {
    '35': 'Jawa Timur',
    '35.24': 'Kabupaten Lamongan',
    '35.24.01': 'Sukorame',
    '35.24.01.2001': 'Warukulon',
}

def make_record() -> RegistrationRecord:
    return RegistrationRecord(
        student=StudentData(
            full_name="MUHAMMAD ZIDAN AL-FARISI", nickname="ZIDAN", gender="Laki-laki",
            nisn="0123456789", nik="3524123456789001", birth_place="Lamongan",
            birth_date="05/03/2018", religion=Other("Kepercayaan"), birth_order=1, sibling_count=0,
            street="Jl. Kenanga No. 27", hamlet="Warukulon", rt_rw="001/002",
            province='35', regency='35.24', district='35.24.01', village='35.24.01.2001',
            postal_code='62271', residence="Bersama orang tua",
            transport=["jalan_kaki", Other("Sepeda")],
        ),
        father=ParentData(name="AHMAD SUBAGIYO", nik="3524123456780002", birth_year=1985,
                          education="SMA Sederajat", occupation=Other("Tukang Kayu"), phone="081234567890"),
        mother=ParentData(name="SITI AMINAH", is_deceased=True),
    )

# ===================================================================
# PRINT SLOT
# ===================================================================

def test_print_slot_round_trip() -> None:
    storage: dict[str, Any] = {}
    record = make_record()

    save_for_print(storage, record, REGION_NAMES)
    loaded = load_for_print(storage)

    assert loaded == record, "Nothing may be lost or coerced on the way through the slot"
    assert loaded is not None
    assert loaded.student.birth_date == "05/03/2018"
    assert loaded.student.religion == Other("Kepercayaan")
    assert loaded.student.transport == ["jalan_kaki", Other("Sepeda")]
    assert loaded.father.birth_year == 1985
    assert loaded.mother.is_deceased is True
    assert load_region_names(storage) == REGION_NAMES

def test_print_slot_holds_plain_json() -> None:
    storage: dict[str, Any] = {}
    save_for_print(storage, make_record())
    payload = json.loads(storage[PRINT_SLOT_KEY])
    assert payload['student']['religion'] == {'other': 'Kepercayaan'}
    assert payload['guardian']['relationship'] is None

def test_empty_or_broken_slot() -> None:
    assert load_for_print({}) is None
    assert load_for_print({PRINT_SLOT_KEY: "{not json"}) is None
    assert load_region_names({}) == {}

def test_slot_ignores_unknown_fields() -> None:
    payload = make_record().to_dict()
    payload['student']['legacy_field'] = 'x'
    loaded = load_for_print({PRINT_SLOT_KEY: json.dumps(payload)})
    assert loaded == make_record()

# ===================================================================
# FORMATTERS
# ===================================================================

def test_format_date_id() -> None:
    assert format_date_id("05/03/2018") == "05 Maret 2018"
    assert format_date_id("31/12/2019") == "31 Desember 2019"
    assert format_date_id(None) == ''
    assert format_date_id("kemarin") == "kemarin", "Unparsable text is shown as typed"

def test_format_phone() -> None:
    assert format_phone("081234567890") == "+6281234567890"
    assert format_phone("81234567890") == "+6281234567890"
    assert format_phone("+6281234567890") == "+6281234567890"
    assert format_phone("6281234567890") == "+6281234567890"
    assert format_phone("") == ''

def test_format_transport() -> None:
    assert format_transport(["jalan_kaki", Other("Sepeda")]) == "Jalan kaki, Lainnya: Sepeda"
    assert format_transport([]) == ''

def test_format_address() -> None:
    address = format_address(make_record().student, REGION_NAMES)
    assert address == ("Jl. Kenanga No. 27, Dsn. Warukulon, RT/RW 001/002, Ds/Kel. Warukulon, "
                       "Kec. Sukorame, Kabupaten Lamongan, Jawa Timur, 62271")

def test_format_address_without_names_falls_back_to_codes() -> None:
    student = StudentData(province='35', regency='35.24')
    assert format_address(student) == "35.24, 35"

# ===================================================================
# SUMMARY SECTIONS
# ===================================================================

def test_deceased_parent_rows() -> None:
    mother = dict(parent_rows(ParentData(name="SITI AMINAH", is_deceased=True, phone="081234567890"),
                              female=True))
    father = dict(parent_rows(ParentData(name="AHMAD", is_deceased=True)))

    assert mother['Nama'] == "(Almh.) SITI AMINAH"
    assert father['Nama'] == "(Alm.) AHMAD"
    assert mother['Pekerjaan'] == "Meninggal Dunia"
    assert mother['Penghasilan'] == "Meninggal Dunia"
    assert mother['Nomor HP'] == '-', "A deceased parent's phone is never shown"

def test_living_parent_rows() -> None:
    rows = dict(parent_rows(make_record().father))
    assert rows['Pekerjaan'] == "Lainnya: Tukang Kayu"
    assert rows['Nomor HP'] == "+6281234567890"
    assert rows['Penghasilan'] == '-'

def test_build_summary_sections() -> None:
    sections = build_summary(make_record(), REGION_NAMES)

    assert [s.title for s in sections] == [
        'A. IDENTITAS PESERTA DIDIK', 'B. IDENTITAS AYAH', 'C. IDENTITAS IBU', 'D. IDENTITAS WALI',
    ]
    student = dict(sections[0].rows)
    assert student['Tempat, Tanggal Lahir'] == "Lamongan, 05 Maret 2018"
    assert student['Agama'] == "Lainnya: Kepercayaan"
    assert student['Desa/Kelurahan'] == "Warukulon"
    assert student['Jumlah Saudara Kandung'] == '0'

    guardian = sections[3]
    assert guardian.rows == []
    assert guardian.note == 'Data wali tidak diisi.'

def test_build_summary_with_guardian() -> None:
    record = make_record()
    record.guardian = GuardianData(name="KASIM", relationship=Other("Tetangga"), phone="85712345678")
    guardian = build_summary(record)[3]
    rows = dict(guardian.rows)
    assert guardian.note == ''
    assert rows['Hubungan'] == "Lainnya: Tetangga"
    assert rows['Nomor HP'] == "+6285712345678"
