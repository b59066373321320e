"""
The wizard controller: owns the current step, the per-step completion map
and the transitions between steps. Rendering code reads from it and calls
its methods; it never touches the internals directly.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any
from collections.abc import Callable

from .form_data_builder import RegistrationRecord
from .step_definitions import STEPS_BY_ID
from .utils import FieldConfig, StepDefinition, FIRST_STEP, LAST_STEP, STEP_ERROR_PREFIX
from .validation import ValidatorFunc

logger = logging.getLogger(__name__)


class StepStatus(Enum):
    UNVALIDATED = 'unvalidated'
    VALID = 'valid'
    INVALID = 'invalid'

# ===================================================================
# 1. VALIDATION ENGINE
# ===================================================================

def _validate_simple_field(error_key: str, value: Any, validator_list: list[ValidatorFunc],
                           record: RegistrationRecord, errors: dict[str, str]) -> bool:
    for validator_func in validator_list:
        is_valid, msg = validator_func(value, record)
        if not is_valid:
            if error_key not in errors: errors[error_key] = msg
            return False
    return True

def active_fields(step_def: StepDefinition, record: RegistrationRecord) -> list[FieldConfig]:
    """The step's field entries whose trigger currently holds."""
    return [
        conf for conf in step_def.get('fields', [])
        if 'when' not in conf or conf['when'](record)
    ]

def execute_step_validators(step_def: StepDefinition, record: RegistrationRecord) -> tuple[bool, dict[str, str]]:
    """
    Runs field validation for the step's active fields, then the step's own
    aggregate rule. Returns (is_step_valid, {error_key: message}).
    """
    new_errors: dict[str, str] = {}
    is_step_valid = True
    for field_conf in active_fields(step_def, record):
        error_key = field_conf.get('error_key', field_conf['field'].key)
        value = record.get(field_conf['field'].key)
        if not _validate_simple_field(error_key, value, field_conf['validators'], record, new_errors):
            is_step_valid = False
    rule_ok, rule_msg = step_def['rule'](record)
    if not rule_ok:
        is_step_valid = False
        new_errors[f"{STEP_ERROR_PREFIX}{step_def['id']}"] = rule_msg
    return is_step_valid, new_errors

def validate_record(record: RegistrationRecord) -> tuple[dict[int, bool], dict[str, str]]:
    """The full schema: every step's fields plus every cross-field rule."""
    results: dict[int, bool] = {}
    errors: dict[str, str] = {}
    for step_id, step_def in STEPS_BY_ID.items():
        ok, step_errors = execute_step_validators(step_def, record)
        results[step_id] = ok
        errors.update(step_errors)
    return results, errors

# ===================================================================
# 2. NAVIGATION HELPERS
# ===================================================================

def calculate_next_step_id(current_step_id: int) -> int:
    """Calculates the ID of the next step, staying on the last one."""
    if current_step_id < FIRST_STEP or current_step_id > LAST_STEP:
        return FIRST_STEP
    return min(current_step_id + 1, LAST_STEP)

def calculate_prev_step_id(current_step_id: int) -> int:
    """Calculates the ID of the previous step, staying on the first one."""
    if current_step_id < FIRST_STEP or current_step_id > LAST_STEP:
        return FIRST_STEP
    return max(current_step_id - 1, FIRST_STEP)

# ===================================================================
# 3. THE CONTROLLER
# ===================================================================

class WizardController:
    def __init__(
        self,
        record: RegistrationRecord | None = None,
        on_submitted: Callable[[RegistrationRecord], None] | None = None,
        on_validation_failed: Callable[[dict[str, str]], None] | None = None,
    ) -> None:
        self.record = record if record is not None else RegistrationRecord()
        self.on_submitted = on_submitted
        self.on_validation_failed = on_validation_failed
        self._current_step = FIRST_STEP
        self._completion: dict[int, StepStatus] = {
            step_id: StepStatus.UNVALIDATED for step_id in STEPS_BY_ID
        }
        self._errors: dict[str, str] = {}

    @property
    def current_step(self) -> int:
        return self._current_step

    @property
    def completion(self) -> dict[int, StepStatus]:
        return dict(self._completion)

    @property
    def errors(self) -> dict[str, str]:
        return dict(self._errors)

    @property
    def guardian_required(self) -> bool:
        """Drives the guardian labels; validation itself does not read it."""
        return self.record.both_parents_deceased

    def error_for(self, key: str) -> str | None:
        return self._errors.get(key)

    def leave_step(self, step: int, target: int) -> StepStatus | None:
        """
        Leaves `step` for `target`. Moving forward validates `step` and records
        the outcome; moving back or staying put skips validation. Navigation
        itself is never blocked. Returns the recorded status, if any.
        """
        if target not in STEPS_BY_ID:
            raise ValueError(f"Unknown step: {target}")
        status: StepStatus | None = None
        if target > step:
            status = self.validate_step(step)
        self._current_step = target
        return status

    def validate_step(self, step: int) -> StepStatus:
        step_def = STEPS_BY_ID[step]
        ok, step_errors = execute_step_validators(step_def, self.record)
        self._replace_step_errors(step_def, step_errors)
        status = StepStatus.VALID if ok else StepStatus.INVALID
        self._completion[step] = status
        logger.info(f"Step {step} ({step_def['name']}) validated: {status.value}")
        return status

    def advance(self) -> StepStatus | None:
        return self.leave_step(self._current_step, calculate_next_step_id(self._current_step))

    def retreat(self) -> StepStatus | None:
        return self.leave_step(self._current_step, calculate_prev_step_id(self._current_step))

    def jump_to(self, step: int) -> StepStatus | None:
        return self.leave_step(self._current_step, step)

    def submit(self) -> bool:
        """
        All-or-nothing submission. On success every step is marked valid and
        the record goes to `on_submitted`; otherwise the controller moves to
        the lowest failing step and reports through `on_validation_failed`.
        """
        results, errors = validate_record(self.record)
        self._errors = errors
        for step_id, ok in results.items():
            self._completion[step_id] = StepStatus.VALID if ok else StepStatus.INVALID

        failing = sorted(step_id for step_id, ok in results.items() if not ok)
        if not failing:
            logger.info("Registration submitted.")
            if self.on_submitted:
                self.on_submitted(self.record)
            return True

        self._current_step = failing[0]
        logger.info(f"Submission rejected; failing steps: {failing}")
        if self.on_validation_failed:
            self.on_validation_failed(errors)
        return False

    def reset(self) -> None:
        self.record = RegistrationRecord()
        self._current_step = FIRST_STEP
        self._completion = {step_id: StepStatus.UNVALIDATED for step_id in STEPS_BY_ID}
        self._errors = {}

    def _replace_step_errors(self, step_def: StepDefinition, step_errors: dict[str, str]) -> None:
        stale_keys = {conf.get('error_key', conf['field'].key) for conf in step_def['fields']}
        stale_keys.add(f"{STEP_ERROR_PREFIX}{step_def['id']}")
        self._errors = {k: v for k, v in self._errors.items() if k not in stale_keys}
        self._errors.update(step_errors)
