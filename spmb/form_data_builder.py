from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Any, TypeAlias

# ===================================================================
# 1. THE "LAINNYA" VARIANT
# ===================================================================
# A choice field holds either one of its listed options (a plain str) or
# an Other(detail). Picking a listed option replaces the Other wholesale,
# so the detail text can never outlive the selection that needed it.

@dataclass(frozen=True)
class Other:
    """A 'Lainnya' selection together with the free text typed for it."""
    detail: str = ''

    def is_filled(self) -> bool:
        return bool(self.detail.strip())

Choice: TypeAlias = str | Other | None


def is_other(value: Any) -> bool:
    return isinstance(value, Other)


def choice_text(value: Choice, other_prefix: str = '') -> str:
    """Human readable text for a choice value ('' when nothing was picked)."""
    if value is None:
        return ''
    if isinstance(value, Other):
        return f"{other_prefix}{value.detail.strip()}"
    return value


def _encode(value: Any) -> Any:
    if isinstance(value, Other):
        return {'other': value.detail}
    if isinstance(value, list):
        return [_encode(item) for item in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict) and set(value) == {'other'}:
        return Other(str(value['other'] or ''))
    if isinstance(value, list):
        return [_decode(item) for item in value]
    return value


def _is_blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Other):
        return not value.is_filled()
    if isinstance(value, (list, dict)):
        return not value
    return False

# ===================================================================
# 2. THE SECTIONS OF A REGISTRATION
# ===================================================================

class _Section:
    """Shared dict conversion for the dataclass sections below."""

    def to_dict(self) -> dict[str, Any]:
        return {f.name: _encode(getattr(self, f.name)) for f in fields(self)}  # type: ignore[arg-type]

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Any:
        data = data or {}
        known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        return cls(**{k: _decode(v) for k, v in data.items() if k in known})

    def is_empty(self) -> bool:
        """True when no field carries user input."""
        return all(_is_blank(getattr(self, f.name)) for f in fields(self))  # type: ignore[arg-type]


@dataclass
class StudentData(_Section):
    full_name: str = ''
    nickname: str = ''
    gender: str | None = None
    nisn: str = ''
    nik: str = ''
    birth_place: str = ''
    birth_date: str | None = None   # dd/mm/yyyy, kept as typed
    religion: Choice = None
    birth_order: int | None = None
    sibling_count: int | None = None
    street: str = ''
    hamlet: str = ''
    rt_rw: str = ''
    province: str = ''
    regency: str = ''
    district: str = ''
    village: str = ''
    postal_code: str = ''
    residence: Choice = None
    transport: list[str | Other] = field(default_factory=list)


@dataclass
class ParentData(_Section):
    name: str = ''
    nik: str = ''
    birth_year: int | None = None
    education: Choice = None
    occupation: Choice = None
    income: str | None = None
    phone: str = ''
    is_deceased: bool = False


@dataclass
class GuardianData(ParentData):
    relationship: Choice = None

# ===================================================================
# 3. THE AGGREGATE
# ===================================================================

SECTIONS: tuple[str, ...] = ('student', 'father', 'mother', 'guardian')


@dataclass
class RegistrationRecord:
    """
    Everything collected by the wizard. Fields are addressed by dotted
    paths such as 'student.religion' or 'father.phone'.
    """
    student: StudentData = field(default_factory=StudentData)
    father: ParentData = field(default_factory=ParentData)
    mother: ParentData = field(default_factory=ParentData)
    guardian: GuardianData = field(default_factory=GuardianData)

    def get(self, path: str, default: Any = None) -> Any:
        section_name, _, attr = path.partition('.')
        section = getattr(self, section_name, None)
        if section is None or not attr:
            return default
        return getattr(section, attr, default)

    def set(self, path: str, value: Any) -> None:
        section_name, _, attr = path.partition('.')
        section = getattr(self, section_name, None)
        if section is None or not hasattr(section, attr):
            raise KeyError(f"Unknown field path: {path}")
        setattr(section, attr, value)

    @property
    def both_parents_deceased(self) -> bool:
        return self.father.is_deceased and self.mother.is_deceased

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name).to_dict() for name in SECTIONS}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RegistrationRecord:
        return cls(
            student=StudentData.from_dict(data.get('student')),
            father=ParentData.from_dict(data.get('father')),
            mother=ParentData.from_dict(data.get('mother')),
            guardian=GuardianData.from_dict(data.get('guardian')),
        )


