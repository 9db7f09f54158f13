"""
PaperForm Test Configuration and Shared Fixtures

Provides pytest fixtures for empty and filled-in forms, a policy that ignores
the environment, and a helper that writes form JSON documents to disk.

Example usage:
    def test_validate_sample(sample_form, default_policy):
        result = validate_form(sample_form, default_policy)
"""

import json
import os
from pathlib import Path
from typing import Any, List, Union

import pytest

# Rate limiting is off for the whole suite; app.py reads this at import time
os.environ.setdefault("PAPERFORM_DISABLE_RATELIMIT", "1")

from paperform.forms import create_empty_form, dump_form
from paperform.models import FormRow, FormType, PaperForm
from paperform.policy import ValidationPolicy
from tests.helpers import make_form, make_row

POLICY_ENV_VARS = [
    "FLAG_UNPARSEABLE_INPUT",
    "MAX_PLAUSIBLE_GAP_MINUTES",
    *[f"FINAL_CHILL_MAX_F_{form_type.value}" for form_type in FormType],
]


@pytest.fixture(autouse=True)
def clean_policy_env(monkeypatch):
    """Keep policy environment variables from leaking into tests."""
    for name in POLICY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def default_policy() -> ValidationPolicy:
    """
    Provide the forgiving default policy.

    Returns:
        ValidationPolicy: All flags off, no overrides
    """
    return ValidationPolicy()


@pytest.fixture
def empty_form() -> PaperForm:
    """Provide a freshly created standard form with nine blank rows."""
    return create_empty_form(FormType.COOKING_AND_COOLING, form_initial="AB")


@pytest.fixture
def compliant_row() -> FormRow:
    """Provide a row where every reading is within limits."""
    return make_row(
        rack="1st Rack",
        type="Beef",
        ccp1=("170", "10:00"),
        ccp2=("150", "10:30"),
        coolingTo80=("75", "12:00"),
        coolingTo54=("50", "15:00"),
        finalChill=("38", "18:00"),
    )


@pytest.fixture
def sample_form(compliant_row) -> PaperForm:
    """
    Provide a form with one compliant row, one failing row and blank rows.

    Row 2 has CCP1 at 162°F and an 80°F cooling reading taken 110 minutes
    after CCP2.
    """
    failing_row = make_row(
        rack="2nd Rack",
        type="Chicken",
        ccp1=("162", "11:00"),
        ccp2=("140", "11:20"),
        coolingTo80=("79", "13:10"),
    )
    return make_form(
        compliant_row,
        failing_row,
        FormRow(),
        FormRow(),
        id="form-sample",
        title="Kitchen A",
    )


@pytest.fixture
def write_form_file(tmp_path):
    """
    Provide a helper writing form documents to a JSON file.

    Returns:
        Callable taking a form, a list of forms or raw data, returning the path
    """
    def _write(data: Union[PaperForm, List[PaperForm], Any], name: str = "form.json") -> Path:
        if isinstance(data, PaperForm):
            data = dump_form(data)
        elif isinstance(data, list) and data and isinstance(data[0], PaperForm):
            data = [dump_form(form) for form in data]
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write
