"""
PaperForm Test Helper Utilities

Short builders for form rows and forms, so tests can state readings as
(temp, time) pairs instead of nested dictionaries.

Example usage:
    row = make_row(type="Beef", ccp1=("170", "10:00"))
    form = make_form(row, form_type=FormType.BAGEL_DOG_COOKING_COOLING)
"""

from typing import Any, Dict

from paperform.models import FormRow, FormType, PaperForm


def make_row(**cells: Any) -> FormRow:
    """
    Build a form row from keyword arguments.

    Stage cells are given as (temp,) or (temp, time) tuples using the
    camelCase stage names; other keys are passed through.

    Example:
        make_row(type="Beef", ccp1=("170", "10:00"), coolingTo80=("75", "12:00"))
    """
    data: Dict[str, Any] = {}
    for key, value in cells.items():
        if isinstance(value, tuple):
            temp, time = (value + ("",))[:2]
            data[key] = {"temp": temp, "time": time}
        else:
            data[key] = value
    return FormRow.model_validate(data)


def make_form(*rows: FormRow, form_type: FormType = FormType.COOKING_AND_COOLING, **fields: Any) -> PaperForm:
    """Build a form holding the given rows."""
    return PaperForm(form_type=form_type, entries=list(rows), **fields)
