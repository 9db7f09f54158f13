"""Form factory, display names and JSON loading."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from paperform.errors import FormDataError
from paperform.models import FormRow, FormStatus, FormType, PaperForm

logger = logging.getLogger(__name__)

DEFAULT_ROW_COUNT = 9

FORM_TYPE_DISPLAY_NAMES: Dict[FormType, str] = {
    FormType.COOKING_AND_COOLING: "Cooking and Cooling for Meat & Non Meat Ingredients",
    FormType.PIROSHKI_CALZONE_EMPANADA: "Piroshki, Calzone, Empanada Heat Treating & Cooling CCP 2",
    FormType.BAGEL_DOG_COOKING_COOLING: "Bagel Dog Cooking & Cooling",
}


def get_form_type_display_name(form_type: Union[FormType, str]) -> str:
    """Human-readable title of a form variant."""
    try:
        return FORM_TYPE_DISPLAY_NAMES[FormType(form_type)]
    except ValueError:
        return "Unknown Form Type"


def create_empty_form(
    form_type: FormType = FormType.COOKING_AND_COOLING,
    form_initial: str = "",
    rows: int = DEFAULT_ROW_COUNT
) -> PaperForm:
    """
    Create a new form with empty rows, ready to be filled in.

    Args:
        form_type: Form variant
        form_initial: Initials of the operator who owns the form
        rows: Number of pre-populated rows

    Returns:
        A PaperForm with status In Progress
    """
    if rows < 0:
        raise ValueError("rows must be >= 0")

    return PaperForm(
        form_type=FormType(form_type),
        form_initial=form_initial,
        status=FormStatus.IN_PROGRESS,
        entries=[FormRow() for _ in range(rows)],
    )


def parse_form(data: Dict[str, Any]) -> PaperForm:
    """
    Build a PaperForm from a decoded JSON document.

    Raises:
        FormDataError: If the document does not match the form schema
    """
    if not isinstance(data, dict):
        raise FormDataError(f"Form document must be a JSON object, got {type(data).__name__}")
    try:
        return PaperForm.model_validate(data)
    except ValidationError as e:
        raise FormDataError(f"Invalid form document: {e}") from e


def _read_json(path: Union[str, Path]) -> Any:
    path = Path(path)
    if not path.exists():
        raise FormDataError(f"Form file not found: {path}")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise FormDataError(f"Form file is not valid JSON: {path}: {e}") from e


def load_forms(path: Union[str, Path]) -> List[PaperForm]:
    """
    Load one form or a list of forms from a JSON file.

    Raises:
        FormDataError: If the file is missing, is not JSON, or a form is invalid
    """
    data = _read_json(path)
    documents = data if isinstance(data, list) else [data]
    forms = [parse_form(document) for document in documents]
    logger.info(f"Loaded {len(forms)} form(s) from {path}")
    return forms


def load_form(path: Union[str, Path]) -> PaperForm:
    """
    Load exactly one form from a JSON file.

    Raises:
        FormDataError: If the file does not hold a single valid form
    """
    data = _read_json(path)
    if isinstance(data, list):
        if len(data) != 1:
            raise FormDataError(f"Expected one form in {path}, found {len(data)}")
        data = data[0]
    return parse_form(data)


def dump_form(form: PaperForm) -> Dict[str, Any]:
    """Serialize a form with the camelCase keys the form application stores."""
    return form.model_dump(mode="json", by_alias=True)
