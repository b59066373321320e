# spmb/step_definitions.py
from __future__ import annotations

from datetime import date

from .form_data_builder import RegistrationRecord, Other, is_other
from .utils import AppSchema, FieldConfig, FormField, ParentFields, StepDefinition, StepRule
from .validation import (
    ValidatorFunc, required, required_choice, match_pattern, exact_length, max_length,
    is_integer_in_range, is_within_date_range, other_detail_filled,
    NIK_PATTERN, NISN_PATTERN, NUMERIC_PATTERN, POSTAL_CODE_PATTERN, RT_RW_PATTERN, PHONE_PATTERN,
)

S = AppSchema.Student
CURRENT_YEAR: int = date.today().year

# ===================================================================
# 1. SHARED FIELD RULES
# ===================================================================

def _nik_rules(label: str = "NIK") -> list[ValidatorFunc]:
    return [
        exact_length(16, f"{label} harus 16 digit angka"),
        match_pattern(NUMERIC_PATTERN, f"{label} harus berupa angka"),
        match_pattern(NIK_PATTERN, f"{label} harus 16 digit angka"),
    ]

def _other_detail(f: FormField, what: str) -> FieldConfig:
    """The conditional entry for the free text behind a 'Lainnya' selection."""
    return {
        'field': f,
        'validators': [other_detail_filled(f"Detail {what} lainnya wajib diisi jika memilih 'Lainnya'")],
        'when': lambda record, key=f.key: is_other(record.get(key)),
        'error_key': f.detail_key,
    }

def _transport_other_selected(record: RegistrationRecord) -> bool:
    return any(isinstance(item, Other) for item in record.student.transport)

def _active_other_details(record: RegistrationRecord, fields: list[FieldConfig]) -> list[str]:
    """Error keys of every active 'Lainnya' entry whose detail is blank."""
    missing: list[str] = []
    for conf in fields:
        if 'error_key' not in conf or not conf['error_key'].endswith('_detail'):
            continue
        when = conf.get('when')
        if when and not when(record):
            continue
        value = record.get(conf['field'].key)
        items = value if isinstance(value, list) else [value]
        if any(isinstance(item, Other) and not item.is_filled() for item in items):
            missing.append(conf['error_key'])
    return missing

# ===================================================================
# 2. PARENT / GUARDIAN SCHEMA
# ===================================================================

def _alive(section: str):
    return lambda record: not record.get(f'{section}.is_deceased', False)

def parent_field_configs(pf: ParentFields, require_name: bool = True) -> list[FieldConfig]:
    """
    The parent schema. With `require_name` the name is mandatory unless the
    parent is marked deceased; every other field is optional but must be
    well-formed once filled in. Occupation and income are skipped for a
    deceased parent.
    """
    alive = _alive(pf.section)
    name_conf: FieldConfig = {'field': pf.NAME, 'validators': [max_length(100, "Nama maksimal 100 karakter.")]}
    if require_name:
        name_conf = {'field': pf.NAME, 'validators': [required("Nama wajib diisi"),
                                                      max_length(100, "Nama maksimal 100 karakter.")],
                     'when': alive}
    education_detail = _other_detail(pf.EDUCATION, 'pendidikan')
    occupation_detail = _other_detail(pf.OCCUPATION, 'pekerjaan')
    occupation_detail['when'] = lambda record, key=pf.OCCUPATION.key: alive(record) and is_other(record.get(key))
    return [
        name_conf,
        {'field': pf.NIK, 'validators': _nik_rules()},
        {'field': pf.BIRTH_YEAR, 'validators': [
            is_integer_in_range(1900, CURRENT_YEAR, f"Tahun lahir harus antara 1900 dan {CURRENT_YEAR}",
                                "Tahun lahir harus angka")
        ]},
        {'field': pf.EDUCATION, 'validators': []},
        education_detail,
        {'field': pf.OCCUPATION, 'validators': [], 'when': alive},
        occupation_detail,
        {'field': pf.INCOME, 'validators': [], 'when': alive},
    ]

def guardian_in_play(record: RegistrationRecord) -> bool:
    """The guardian section is validated once touched, or when it is mandatory."""
    return record.both_parents_deceased or not record.guardian.is_empty()

def guardian_field_configs() -> list[FieldConfig]:
    g = AppSchema.Guardian
    configs: list[FieldConfig] = [
        {'field': g.RELATIONSHIP, 'validators': []},
        _other_detail(g.RELATIONSHIP, 'hubungan'),
        {'field': g.NAME, 'validators': [required("Nama wali wajib diisi"),
                                         max_length(100, "Nama maksimal 100 karakter.")]},
    ] + parent_field_configs(g, require_name=False)[1:]
    for conf in configs:
        inner = conf.get('when')
        conf['when'] = (lambda record, inner=inner: guardian_in_play(record) and (inner is None or inner(record)))
    return configs

# ===================================================================
# 3. STEP-LEVEL RULES
# ===================================================================

def _fields_pass(fields: list[FieldConfig], record: RegistrationRecord) -> bool:
    for conf in fields:
        when = conf.get('when')
        if when and not when(record):
            continue
        value = record.get(conf['field'].key)
        for validator_func in conf['validators']:
            if not validator_func(value, record)[0]:
                return False
    return True

def _student_rule(fields: list[FieldConfig]) -> StepRule:
    def rule(record: RegistrationRecord) -> tuple[bool, str]:
        if not _fields_pass(fields, record):
            return False, "Data siswa belum lengkap atau belum valid."
        if _active_other_details(record, fields):
            return False, "Detail pilihan 'Lainnya' wajib diisi."
        return True, ""
    return rule

def _parent_rule(fields: list[FieldConfig], title: str) -> StepRule:
    def rule(record: RegistrationRecord) -> tuple[bool, str]:
        if not _fields_pass(fields, record):
            return False, f"Data {title} belum lengkap atau belum valid."
        return True, ""
    return rule

def _guardian_rule(fields: list[FieldConfig]) -> StepRule:
    def rule(record: RegistrationRecord) -> tuple[bool, str]:
        if record.both_parents_deceased and record.guardian.is_empty():
            return False, "Karena kedua orang tua telah meninggal, data wali wajib diisi."
        if not _fields_pass(fields, record):
            return False, "Data wali belum lengkap atau belum valid."
        return True, ""
    return rule

PHONE_SECTIONS: tuple[str, ...] = ('father', 'mother', 'guardian')

def usable_phones(record: RegistrationRecord) -> dict[str, str]:
    """Phone numbers that count as contacts; a deceased parent's number never does."""
    phones: dict[str, str] = {}
    for section in PHONE_SECTIONS:
        if section != 'guardian' and record.get(f'{section}.is_deceased'):
            continue
        phone = (record.get(f'{section}.phone') or '').strip()
        if phone:
            phones[section] = phone
    return phones

def _contact_rule(fields: list[FieldConfig]) -> StepRule:
    def rule(record: RegistrationRecord) -> tuple[bool, str]:
        if not usable_phones(record):
            return False, "Minimal salah satu nomor HP (Ayah/Ibu/Wali) wajib diisi."
        if not _fields_pass(fields, record):
            return False, "Nomor HP tidak valid."
        return True, ""
    return rule

# ===================================================================
# 4. THE STEPS
# ===================================================================

STUDENT_FIELDS: list[FieldConfig] = [
    {'field': S.FULL_NAME, 'validators': [required("Nama lengkap wajib diisi"),
                                          max_length(100, "Nama maksimal 100 karakter.")]},
    {'field': S.NICKNAME, 'validators': [required("Nama panggilan wajib diisi")]},
    {'field': S.GENDER, 'validators': [required_choice("Jenis kelamin wajib dipilih")]},
    {'field': S.NISN, 'validators': [
        exact_length(10, "NISN harus 10 digit angka"),
        match_pattern(NUMERIC_PATTERN, "NISN harus berupa angka"),
        match_pattern(NISN_PATTERN, "NISN harus 10 digit angka"),
    ]},
    {'field': S.NIK, 'validators': _nik_rules()},
    {'field': S.BIRTH_PLACE, 'validators': [required("Tempat lahir wajib diisi")]},
    {'field': S.BIRTH_DATE, 'validators': [required("Tanggal lahir wajib diisi"),
                                           is_within_date_range(message="Tanggal lahir di luar rentang yang diizinkan")]},
    {'field': S.RELIGION, 'validators': [required_choice("Agama wajib dipilih")]},
    _other_detail(S.RELIGION, 'agama'),
    {'field': S.BIRTH_ORDER, 'validators': [
        required("Anak keberapa wajib diisi"),
        is_integer_in_range(1, None, "Anak keberapa minimal 1", "Anak keberapa harus angka"),
    ]},
    {'field': S.SIBLING_COUNT, 'validators': [
        required("Jumlah saudara wajib diisi"),
        is_integer_in_range(0, None, "Jumlah saudara minimal 0", "Jumlah saudara harus angka"),
    ]},
    {'field': S.RESIDENCE, 'validators': [required_choice("Tempat tinggal wajib dipilih")]},
    _other_detail(S.RESIDENCE, 'tempat tinggal'),
    {'field': S.PROVINCE, 'validators': [required_choice("Provinsi wajib dipilih")]},
    {'field': S.REGENCY, 'validators': [required_choice("Kabupaten/Kota wajib dipilih")]},
    {'field': S.DISTRICT, 'validators': [required_choice("Kecamatan wajib dipilih")]},
    {'field': S.VILLAGE, 'validators': [required_choice("Desa/Kelurahan wajib dipilih")]},
    {'field': S.HAMLET, 'validators': [required("Dusun wajib diisi")]},
    {'field': S.RT_RW, 'validators': [required("RT/RW wajib diisi"),
                                      match_pattern(RT_RW_PATTERN, "Format RT/RW salah (contoh: 001/002)")]},
    {'field': S.STREET, 'validators': [max_length(150, "Alamat maksimal 150 karakter.")]},
    {'field': S.POSTAL_CODE, 'validators': [required("Kode pos wajib diisi"),
                                            exact_length(5, "Kode pos harus 5 digit"),
                                            match_pattern(POSTAL_CODE_PATTERN, "Kode Pos harus 5 digit angka")]},
    {'field': S.TRANSPORT, 'validators': [required("Pilih minimal satu moda transportasi")]},
    {'field': S.TRANSPORT, 'validators': [
        other_detail_filled("Detail moda transportasi lainnya wajib diisi jika memilih 'Lainnya'")
    ], 'when': _transport_other_selected, 'error_key': S.TRANSPORT.detail_key},
]

FATHER_FIELDS: list[FieldConfig] = parent_field_configs(AppSchema.Father)
MOTHER_FIELDS: list[FieldConfig] = parent_field_configs(AppSchema.Mother)
GUARDIAN_FIELDS: list[FieldConfig] = guardian_field_configs()

def _phone_conf(pf: ParentFields, label: str, alive_only: bool) -> FieldConfig:
    conf: FieldConfig = {'field': pf.PHONE, 'validators': [
        match_pattern(PHONE_PATTERN, f"Nomor HP {label} tidak valid (contoh: 81234567890)")
    ]}
    if alive_only:
        conf['when'] = _alive(pf.section)
    return conf

CONTACT_FIELDS: list[FieldConfig] = [
    _phone_conf(AppSchema.Father, 'Ayah', alive_only=True),
    _phone_conf(AppSchema.Mother, 'Ibu', alive_only=True),
    _phone_conf(AppSchema.Guardian, 'Wali', alive_only=False),
]

STEPS_BY_ID: dict[int, StepDefinition] = {
    1: {
        'id': 1, 'name': 'student', 'title': 'Data Calon Siswa',
        'subtitle': 'Identitas dan alamat tempat tinggal calon siswa.',
        'fields': STUDENT_FIELDS, 'rule': _student_rule(STUDENT_FIELDS),
    },
    2: {
        'id': 2, 'name': 'father', 'title': 'Data Ayah Kandung',
        'subtitle': 'Isi sesuai Kartu Keluarga.',
        'fields': FATHER_FIELDS, 'rule': _parent_rule(FATHER_FIELDS, 'ayah'),
    },
    3: {
        'id': 3, 'name': 'mother', 'title': 'Data Ibu Kandung',
        'subtitle': 'Isi sesuai Kartu Keluarga.',
        'fields': MOTHER_FIELDS, 'rule': _parent_rule(MOTHER_FIELDS, 'ibu'),
    },
    4: {
        'id': 4, 'name': 'guardian', 'title': 'Data Wali',
        'subtitle': ('Wali adalah pihak yang turut bertanggung jawab atas siswa. '
                     'Jika kedua orang tua telah tiada, data wali wajib diisi.'),
        'fields': GUARDIAN_FIELDS, 'rule': _guardian_rule(GUARDIAN_FIELDS),
    },
    5: {
        'id': 5, 'name': 'contact', 'title': 'Kontak & Review',
        'subtitle': 'Minimal salah satu nomor HP (Ayah/Ibu/Wali) wajib diisi, lalu periksa kembali data Anda.',
        'fields': CONTACT_FIELDS, 'rule': _contact_rule(CONTACT_FIELDS),
    },
}
