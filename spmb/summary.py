"""
Review / print side: the transient print slot and the rows shown on the
review step, the print page and the PDF.
"""
from __future__ import annotations

import json
import logging
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from . import para
from .form_data_builder import RegistrationRecord, StudentData, ParentData, GuardianData, Other, choice_text
from .utils import PRINT_SLOT_KEY, REGION_NAMES_KEY
from .validation import DATE_FORMAT_STORAGE

logger = logging.getLogger(__name__)

EMPTY_VALUE: str = '-'

# ===================================================================
# 1. PRINT SLOT
# ===================================================================

def save_for_print(storage: MutableMapping[str, Any], record: RegistrationRecord,
                   region_names: dict[str, str] | None = None) -> None:
    """Writes the record (as JSON text) and the region display names to the slot."""
    storage[PRINT_SLOT_KEY] = json.dumps(record.to_dict())
    storage[REGION_NAMES_KEY] = dict(region_names or {})

def load_for_print(storage: MutableMapping[str, Any]) -> RegistrationRecord | None:
    raw = storage.get(PRINT_SLOT_KEY)
    if not raw:
        return None
    try:
        return RegistrationRecord.from_dict(json.loads(raw))
    except (ValueError, TypeError, AttributeError) as e:
        logger.error(f"Stored form data is unreadable: {e}")
        return None

def load_region_names(storage: MutableMapping[str, Any]) -> dict[str, str]:
    return dict(storage.get(REGION_NAMES_KEY) or {})

# ===================================================================
# 2. VALUE FORMATTERS
# ===================================================================

def format_date_id(value: str | None) -> str:
    """'05/03/2018' -> '05 Maret 2018'; unparsable text is returned as typed."""
    if not value:
        return ''
    try:
        dt = datetime.strptime(value, DATE_FORMAT_STORAGE)
    except ValueError:
        return value
    return f"{dt.day:02d} {para.month_names_id[dt.month - 1]} {dt.year}"

def format_birth(student: StudentData) -> str:
    place = student.birth_place.strip()
    when = format_date_id(student.birth_date)
    if not place and not when:
        return ''
    return f"{place or '...................'}, {when or '...................'}"

def format_phone(phone: str) -> str:
    digits = phone.strip().replace(' ', '').replace('-', '')
    for prefix in ('+62', '62', '0'):
        if digits.startswith(prefix):
            digits = digits[len(prefix):]
            break
    return f"+62{digits}" if digits else ''

def format_choice(value: Any) -> str:
    return choice_text(value, other_prefix=f"{para.OTHER_OPTION}: ")

def format_transport(items: list[str | Other]) -> str:
    labels: list[str] = []
    for item in items:
        if isinstance(item, Other):
            labels.append(f"{para.OTHER_OPTION}: {item.detail.strip()}" if item.is_filled() else para.OTHER_OPTION)
        else:
            labels.append(para.transport.get(item, item))
    return ', '.join(labels)

def format_address(student: StudentData, region_names: dict[str, str] | None = None) -> str:
    """Street, hamlet, RT/RW, village, district, regency, province and postal code on one line."""
    names = region_names or {}
    parts: list[str] = []
    if student.street.strip():
        parts.append(student.street.strip())
    if student.hamlet.strip():
        parts.append(f"Dsn. {student.hamlet.strip()}")
    if any(ch.isdigit() for ch in student.rt_rw):
        parts.append(f"RT/RW {student.rt_rw}")
    if student.village:
        parts.append(f"Ds/Kel. {names.get(student.village, student.village)}")
    if student.district:
        parts.append(f"Kec. {names.get(student.district, student.district)}")
    if student.regency:
        parts.append(names.get(student.regency, student.regency))
    if student.province:
        parts.append(names.get(student.province, student.province))
    if student.postal_code:
        parts.append(student.postal_code)
    return ', '.join(parts)

def _display(value: Any) -> str:
    if value is None or value == '':
        return EMPTY_VALUE
    return str(value)

# ===================================================================
# 3. SUMMARY SECTIONS
# ===================================================================

@dataclass
class SummarySection:
    title: str
    rows: list[tuple[str, str]] = field(default_factory=list)
    note: str = ''

def student_rows(student: StudentData, region_names: dict[str, str] | None = None) -> list[tuple[str, str]]:
    names = region_names or {}
    return [
        ('Nama Lengkap', _display(student.full_name)),
        ('Nama Panggilan', _display(student.nickname)),
        ('Jenis Kelamin', _display(student.gender)),
        ('NISN', _display(student.nisn)),
        ('NIK', _display(student.nik)),
        ('Tempat, Tanggal Lahir', _display(format_birth(student))),
        ('Agama', _display(format_choice(student.religion))),
        ('Anak Ke-', _display(student.birth_order)),
        ('Jumlah Saudara Kandung', _display(student.sibling_count)),
        ('Tinggal Bersama', _display(format_choice(student.residence))),
        ('Transportasi', _display(format_transport(student.transport))),
        ('Provinsi', _display(names.get(student.province, student.province))),
        ('Kabupaten/Kota', _display(names.get(student.regency, student.regency))),
        ('Kecamatan', _display(names.get(student.district, student.district))),
        ('Desa/Kelurahan', _display(names.get(student.village, student.village))),
        ('Kode Pos', _display(student.postal_code)),
        ('Alamat Lengkap', _display(format_address(student, names))),
    ]

def parent_rows(parent: ParentData, female: bool = False) -> list[tuple[str, str]]:
    """A deceased parent is shown as such instead of their optional details."""
    if parent.is_deceased:
        title = '(Almh.)' if female else '(Alm.)'
        name = f"{title} {parent.name}".strip()
        return [
            ('Nama', name),
            ('NIK', _display(parent.nik)),
            ('Tahun Lahir', _display(parent.birth_year)),
            ('Pendidikan', _display(format_choice(parent.education))),
            ('Pekerjaan', para.DECEASED_LABEL),
            ('Penghasilan', para.DECEASED_LABEL),
            ('Nomor HP', EMPTY_VALUE),
        ]
    return [
        ('Nama', _display(parent.name)),
        ('NIK', _display(parent.nik)),
        ('Tahun Lahir', _display(parent.birth_year)),
        ('Pendidikan', _display(format_choice(parent.education))),
        ('Pekerjaan', _display(format_choice(parent.occupation))),
        ('Penghasilan', _display(parent.income)),
        ('Nomor HP', _display(format_phone(parent.phone))),
    ]

def guardian_rows(guardian: GuardianData) -> list[tuple[str, str]]:
    return [('Hubungan', _display(format_choice(guardian.relationship)))] + parent_rows(guardian)

def build_summary(record: RegistrationRecord, region_names: dict[str, str] | None = None) -> list[SummarySection]:
    guardian = SummarySection('D. IDENTITAS WALI')
    if record.guardian.is_empty():
        guardian.note = 'Data wali tidak diisi.'
    else:
        guardian.rows = guardian_rows(record.guardian)
    return [
        SummarySection('A. IDENTITAS PESERTA DIDIK', student_rows(record.student, region_names)),
        SummarySection('B. IDENTITAS AYAH', parent_rows(record.father)),
        SummarySection('C. IDENTITAS IBU', parent_rows(record.mother, female=True)),
        guardian,
    ]
