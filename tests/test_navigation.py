# tests/test_navigation.py
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make the `spmb` directory importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from spmb.wizard import WizardController, StepStatus, calculate_next_step_id, calculate_prev_step_id

def test_calculate_next_step() -> None:
    """Tests the logic for calculating the next step ID."""
    # From the first step
    assert calculate_next_step_id(1) == 2, "Should go from step 1 to step 2"

    # From a middle step
    assert calculate_next_step_id(3) == 4, "Should go from a middle step to the next"

    # From the last step
    assert calculate_next_step_id(5) == 5, "Should stay on the last step"

    # From an unknown step
    assert calculate_next_step_id(99) == 1, "Should go to start from an unknown step"
    assert calculate_next_step_id(0) == 1, "Should go to start from an unknown step"

def test_calculate_prev_step() -> None:
    """Tests the logic for calculating the previous step ID."""
    # From a middle step
    assert calculate_prev_step_id(4) == 3, "Should go from a middle step to the previous"

    # From the first step
    assert calculate_prev_step_id(1) == 1, "Should stay on the first step"

    # From an unknown step
    assert calculate_prev_step_id(99) == 1, "Should go to start from an unknown step"

def test_moving_forward_records_status_but_never_blocks() -> None:
    wizard = WizardController()

    status = wizard.advance()

    assert status == StepStatus.INVALID, "An empty student step is invalid"
    assert wizard.current_step == 2, "Navigation is not blocked by an invalid step"
    assert wizard.completion[1] == StepStatus.INVALID
    assert wizard.error_for('student.full_name') == "Nama lengkap wajib diisi"

def test_moving_back_skips_validation() -> None:
    wizard = WizardController()
    wizard.jump_to(3)
    assert wizard.completion[1] == StepStatus.UNVALIDATED, "Only the step being left is validated"
    assert wizard.completion[3] == StepStatus.UNVALIDATED

    status = wizard.retreat()

    assert status is None, "Going back does not validate"
    assert wizard.current_step == 2
    assert wizard.completion[3] == StepStatus.UNVALIDATED

def test_staying_put_skips_validation() -> None:
    wizard = WizardController()
    assert wizard.jump_to(1) is None
    assert wizard.completion[1] == StepStatus.UNVALIDATED

def test_jump_to_unknown_step_is_rejected() -> None:
    wizard = WizardController()
    with pytest.raises(ValueError):
        wizard.jump_to(6)
    assert wizard.current_step == 1

def test_retreat_on_first_step_stays() -> None:
    wizard = WizardController()
    wizard.retreat()
    assert wizard.current_step == 1

def test_completion_is_a_copy() -> None:
    wizard = WizardController()
    snapshot = wizard.completion
    snapshot[1] = StepStatus.VALID
    assert wizard.completion[1] == StepStatus.UNVALIDATED
