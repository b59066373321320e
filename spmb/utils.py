# spmb/utils.py
from __future__ import annotations
from typing import (
    Any, NotRequired, TypedDict,
)
from collections.abc import Callable
from dataclasses import dataclass

from . import para
from .form_data_builder import RegistrationRecord
from .validation import ValidatorFunc

# ===================================================================
# 1. CORE DATA STRUCTURES & TYPE ALIASES
# ===================================================================

@dataclass(frozen=True)
class FormField:
    """Defines everything about a form field in one place."""
    key: str                 # dotted record path, e.g. 'student.religion'
    label: str
    ui_type: str = 'text'
    options: list[str] | dict[str, str] | None = None
    # The option that turns the value into an Other(detail)
    other_option: str | None = None
    placeholder: str = ''
    max_length: int | None = None
    transform: str | None = None  # 'upper' | 'title'
    # Fields a deceased parent does not fill in
    deceased_exempt: bool = False

    @property
    def section(self) -> str:
        return self.key.split('.', 1)[0]

    @property
    def attr(self) -> str:
        return self.key.split('.', 1)[1]

    @property
    def detail_key(self) -> str:
        """Error key used for the free-text part of an Other selection."""
        return f"{self.key}_detail"


StepRule = Callable[[RegistrationRecord], tuple[bool, str]]
FieldCondition = Callable[[RegistrationRecord], bool]

class FieldConfig(TypedDict):
    field: FormField
    validators: list[ValidatorFunc]
    # Only validated while this returns True
    when: NotRequired[FieldCondition]
    # Overrides field.key when storing the error message
    error_key: NotRequired[str]

class StepDefinition(TypedDict):
    id: int
    name: str
    title: str
    subtitle: str
    fields: list[FieldConfig]
    # The step-level rule no single field encodes
    rule: StepRule

# ===================================================================
# 2. THE APPLICATION SCHEMA (Single Source of Truth)
# ===================================================================

class ParentFields:
    """The field set shared by father, mother and guardian."""

    def __init__(self, section: str, title: str) -> None:
        self.section = section
        self.title = title
        self.NAME = FormField(key=f'{section}.name', label=f'Nama {title}', transform='upper',
                              placeholder=f'Masukkan nama {title.lower()}')
        self.NIK = FormField(key=f'{section}.nik', label=f'NIK {title}', max_length=16,
                             placeholder='16 digit NIK')
        self.BIRTH_YEAR = FormField(key=f'{section}.birth_year', label='Tahun Lahir', ui_type='number',
                                    placeholder='Contoh: 1980')
        self.EDUCATION = FormField(key=f'{section}.education', label='Pendidikan Terakhir', ui_type='select',
                                   options=para.education, other_option=para.OTHER_OPTION)
        self.OCCUPATION = FormField(key=f'{section}.occupation', label='Pekerjaan Utama', ui_type='select',
                                    options=para.occupation, other_option=para.OTHER_OPTION,
                                    deceased_exempt=True)
        self.INCOME = FormField(key=f'{section}.income', label='Penghasilan Bulanan', ui_type='select',
                                options=para.income, deceased_exempt=True)
        self.PHONE = FormField(key=f'{section}.phone', label='Nomor HP (Whatsapp Aktif)', ui_type='phone',
                               placeholder='81234567890', max_length=15, deceased_exempt=True)
        self.IS_DECEASED = FormField(key=f'{section}.is_deceased', label=f'{title} sudah meninggal dunia',
                                     ui_type='checkbox')

    def get_all_fields(self) -> list[FormField]:
        return [
            field_instance for field_instance in vars(self).values()
            if isinstance(field_instance, FormField)
        ]


class GuardianFields(ParentFields):
    def __init__(self) -> None:
        super().__init__('guardian', 'Wali')
        self.RELATIONSHIP = FormField(key='guardian.relationship', label='Hubungan dengan Siswa', ui_type='select',
                                      options=para.guardian_relationship,
                                      other_option=para.GUARDIAN_OTHER_OPTION)


class AppSchema:
    """
    Defines all fields used in the application. Each field is an instance
    of the FormField dataclass, containing all its necessary metadata.
    """
    class Student:
        FULL_NAME = FormField(key='student.full_name', label='Nama Lengkap', transform='upper',
                              placeholder='Sesuai Akta Kelahiran')
        NICKNAME = FormField(key='student.nickname', label='Nama Panggilan', transform='upper',
                             placeholder='Nama panggilan anda')
        GENDER = FormField(key='student.gender', label='Jenis Kelamin', ui_type='radio', options=para.gender)
        NISN = FormField(key='student.nisn', label='NISN (Nomor Induk Siswa Nasional)', max_length=10,
                         placeholder='10 digit NISN')
        NIK = FormField(key='student.nik', label='NIK (Nomor Induk Kependudukan)', max_length=16,
                        placeholder='16 digit NIK (sesuai Kartu Keluarga)')
        BIRTH_PLACE = FormField(key='student.birth_place', label='Tempat Lahir', transform='title',
                                placeholder='Kota/Kabupaten kelahiran')
        BIRTH_DATE = FormField(key='student.birth_date', label='Tanggal Lahir', ui_type='date',
                               placeholder='dd/mm/yyyy')
        RELIGION = FormField(key='student.religion', label='Agama', ui_type='select',
                             options=para.religion, other_option=para.OTHER_OPTION)
        BIRTH_ORDER = FormField(key='student.birth_order', label='Anak Keberapa', ui_type='number',
                                placeholder='Contoh: 1')
        SIBLING_COUNT = FormField(key='student.sibling_count', label='Jumlah Saudara Kandung', ui_type='number',
                                  placeholder='Isi 0 jika tidak punya')
        RESIDENCE = FormField(key='student.residence', label='Tempat Tinggal Saat Ini', ui_type='select',
                              options=para.residence, other_option=para.OTHER_OPTION)
        PROVINCE = FormField(key='student.province', label='Provinsi', ui_type='region')
        REGENCY = FormField(key='student.regency', label='Kabupaten/Kota', ui_type='region')
        DISTRICT = FormField(key='student.district', label='Kecamatan', ui_type='region')
        VILLAGE = FormField(key='student.village', label='Desa/Kelurahan', ui_type='region')
        HAMLET = FormField(key='student.hamlet', label='Dusun', placeholder='Nama dusun/dukuh')
        RT_RW = FormField(key='student.rt_rw', label='RT/RW', placeholder='Contoh: 001/002', max_length=7)
        STREET = FormField(key='student.street', label='Alamat Jalan (Opsional)',
                           placeholder='Contoh: Jl. Kenanga No. 27')
        POSTAL_CODE = FormField(key='student.postal_code', label='Kode Pos', ui_type='postal_code',
                                max_length=5, placeholder='5 digit kode pos')
        TRANSPORT = FormField(key='student.transport', label='Moda Transportasi ke Sekolah',
                              ui_type='checklist', options=para.transport, other_option='lainnya')

    Father = ParentFields('father', 'Ayah Kandung')
    Mother = ParentFields('mother', 'Ibu Kandung')
    Guardian = GuardianFields()

    @classmethod
    def get_all_fields(cls) -> list[FormField]:
        student_fields = [
            field_instance for field_instance in vars(cls.Student).values()
            if isinstance(field_instance, FormField)
        ]
        return (student_fields + cls.Father.get_all_fields()
                + cls.Mother.get_all_fields() + cls.Guardian.get_all_fields())

    @classmethod
    def by_key(cls, key: str) -> FormField | None:
        return next((f for f in cls.get_all_fields() if f.key == key), None)

# ===================================================================
# 3. CENTRALIZED CONSTANTS & SESSION MANAGEMENT
# ===================================================================

FIRST_STEP: int = 1
LAST_STEP: int = 5
PRINT_SLOT_KEY: str = 'form_data'
REGION_NAMES_KEY: str = 'region_names'
STEP_ERROR_PREFIX: str = 'step_'

def apply_transform(f: FormField, value: Any) -> Any:
    """Applies the field's casing rule to typed text."""
    if not isinstance(value, str) or not f.transform:
        return value
    if f.transform == 'upper':
        return value.upper()
    if f.transform == 'title':
        return ' '.join(word.capitalize() for word in value.split(' '))
    return value

def number_from_input(value: Any) -> Any:
    """Whole floats from a number input become ints; fractions stay for the validator to reject."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value
