# tests/test_form_data_builder.py
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the `spmb` directory importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from spmb.form_data_builder import RegistrationRecord, GuardianData, Other, choice_text, is_other
from spmb.utils import AppSchema, apply_transform, number_from_input

def test_dotted_path_access() -> None:
    record = RegistrationRecord()
    record.set('father.phone', "081234567890")
    record.set('student.religion', Other("Kepercayaan"))

    assert record.get('father.phone') == "081234567890"
    assert record.father.phone == "081234567890"
    assert record.get('student.religion') == Other("Kepercayaan")
    assert record.get('nobody.phone', 'x') == 'x'
    assert record.get('student') is None

def test_set_unknown_path_raises() -> None:
    record = RegistrationRecord()
    with pytest.raises(KeyError):
        record.set('student.favourite_colour', 'blue')
    with pytest.raises(KeyError):
        record.set('uncle.name', 'BUDI')

def test_other_variant() -> None:
    assert is_other(Other())
    assert not is_other("Lainnya"), "The plain label is not the variant"
    assert not Other("  ").is_filled()
    assert choice_text(Other(" Kepercayaan "), "Lainnya: ") == "Lainnya: Kepercayaan"
    assert choice_text("Islam") == "Islam"
    assert choice_text(None) == ''

def test_picking_a_listed_option_drops_the_detail() -> None:
    record = RegistrationRecord()
    record.set('student.residence', Other("Rumah nenek"))
    record.set('student.residence', "Kos")
    assert record.student.residence == "Kos"
    assert 'Rumah nenek' not in str(record.to_dict())

def test_guardian_emptiness() -> None:
    assert GuardianData().is_empty()
    assert GuardianData(relationship=Other("   ")).is_empty(), "An Other without text is still untouched"
    assert not GuardianData(phone="81234567890").is_empty()
    assert not GuardianData(is_deceased=True).is_empty()

def test_both_parents_deceased() -> None:
    record = RegistrationRecord()
    record.father.is_deceased = True
    assert not record.both_parents_deceased
    record.mother.is_deceased = True
    assert record.both_parents_deceased

def test_schema_keys_resolve_on_the_record() -> None:
    record = RegistrationRecord()
    for f in AppSchema.get_all_fields():
        record.set(f.key, record.get(f.key))
    assert AppSchema.by_key('guardian.relationship') is AppSchema.Guardian.RELATIONSHIP
    assert AppSchema.by_key('student.unknown') is None

def test_apply_transform() -> None:
    assert apply_transform(AppSchema.Student.FULL_NAME, "zidan al-farisi") == "ZIDAN AL-FARISI"
    assert apply_transform(AppSchema.Student.BIRTH_PLACE, "kota lamongan") == "Kota Lamongan"
    assert apply_transform(AppSchema.Student.NISN, "0123") == "0123"
    assert apply_transform(AppSchema.Student.FULL_NAME, None) is None

def test_number_from_input() -> None:
    whole = number_from_input(1980.0)
    assert whole == 1980 and isinstance(whole, int), "Number inputs hand back floats"
    assert number_from_input(2.5) == 2.5, "Fractions are kept so validation can reject them"
    assert number_from_input(None) is None
    assert number_from_input(3) == 3
