"""
PaperForm Core Models

Pydantic v2 models for the HACCP cooking/cooling paper forms and for the
results of a validation pass. Form documents use the camelCase keys the
form application stores (formType, coolingTo80, dataLog, ...); snake_case
names are accepted as well.

Example usage:
    from paperform.models import PaperForm

    form = PaperForm(**{
        "formType": "COOKING_AND_COOLING",
        "entries": [
            {"type": "Beef", "ccp1": {"temp": "170", "time": "10:00"}}
        ]
    })
    print(form.entries[0].ccp1.temp)
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, List, Literal

from pydantic import BaseModel, Field, computed_field


class FormType(str, Enum):
    """Enumeration of supported paper form variants."""
    COOKING_AND_COOLING = "COOKING_AND_COOLING"
    PIROSHKI_CALZONE_EMPANADA = "PIROSHKI_CALZONE_EMPANADA"
    BAGEL_DOG_COOKING_COOLING = "BAGEL_DOG_COOKING_COOLING"


class Stage(str, Enum):
    """Process stages in the order they are recorded on the form."""
    CCP1 = "ccp1"
    CCP2 = "ccp2"
    COOLING_TO_80 = "coolingTo80"
    COOLING_TO_54 = "coolingTo54"
    FINAL_CHILL = "finalChill"


class Severity(str, Enum):
    """Severity of a validation issue."""
    ERROR = "error"
    WARNING = "warning"


class FormStatus(str, Enum):
    """Lifecycle status of a paper form."""
    IN_PROGRESS = "In Progress"
    COMPLETE = "Complete"
    ERROR = "Error"
    APPROVED = "Approved"


class StageCell(BaseModel):
    """One stage cell of a form row, exactly as the operator typed it."""
    temp: str = Field("", description="Temperature in °F as free text")
    time: str = Field("", description="Time of reading, 24-hour H:MM or HH:MM")
    initial: str = Field("", description="Operator initials")
    data_log: bool = Field(False, alias="dataLog", description="Reading taken from a data logger")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


class FormRow(BaseModel):
    """One rack/batch record of a form."""
    rack: str = Field("", description="Rack label, e.g. '1st Rack'")
    type: str = Field("", description="Product type")
    ccp1: StageCell = Field(default_factory=StageCell)
    ccp2: StageCell = Field(default_factory=StageCell)
    cooling_to_80: StageCell = Field(default_factory=StageCell, alias="coolingTo80")
    cooling_to_54: StageCell = Field(default_factory=StageCell, alias="coolingTo54")
    final_chill: StageCell = Field(default_factory=StageCell, alias="finalChill")

    model_config = {
        "populate_by_name": True,
        # Variant-only sections (heatTreating, ccp2_126, ...) are carried by the app, not validated
        "extra": "ignore",
    }

    def cell(self, stage: Stage) -> StageCell:
        """Return the cell recorded for a stage."""
        return getattr(self, _STAGE_ATTRIBUTES[Stage(stage)])

    def with_cell(self, stage: Stage, **changes) -> "FormRow":
        """Return a copy of the row with one stage cell updated."""
        attribute = _STAGE_ATTRIBUTES[Stage(stage)]
        cell = getattr(self, attribute).model_copy(update=changes)
        return self.model_copy(update={attribute: cell})


_STAGE_ATTRIBUTES = {
    Stage.CCP1: "ccp1",
    Stage.CCP2: "ccp2",
    Stage.COOLING_TO_80: "cooling_to_80",
    Stage.COOLING_TO_54: "cooling_to_54",
    Stage.FINAL_CHILL: "final_chill",
}


def _new_form_id() -> str:
    return f"form-{uuid.uuid4().hex[:12]}"


class PaperForm(BaseModel):
    """
    A complete cooking/cooling form.

    Only the fields the compliance engine reads are modelled; the
    bottom-of-form sections (ingredients, lot numbers, pre-shipment review)
    belong to the form application and are ignored on load.
    """
    id: str = Field(default_factory=_new_form_id)
    date: Optional[datetime] = None
    form_type: FormType = Field(FormType.COOKING_AND_COOLING, alias="formType")
    form_initial: str = Field("", alias="formInitial")
    status: FormStatus = FormStatus.IN_PROGRESS
    title: str = ""
    entries: List[FormRow] = Field(default_factory=list)
    thermometer_number: str = Field("", alias="thermometerNumber")
    corrective_actions_comments: str = Field("", alias="correctiveActionsComments")
    resolved_errors: List[str] = Field(default_factory=list, alias="resolvedErrors")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


class CellValidationResult(BaseModel):
    """Outcome of checking one temperature cell against its stage rule."""
    is_valid: bool = Field(..., alias="isValid")
    error_message: Optional[str] = Field(None, alias="errorMessage")

    model_config = {"populate_by_name": True, "frozen": True}


class ValidationIssue(BaseModel):
    """
    A single violation found in a form row.

    Issues are recomputed on every pass and never stored. Resolution state
    lives on the form as a list of ``error_id`` values.
    """
    row_index: int = Field(..., ge=0, alias="rowIndex")
    field: str = Field(..., description="Dotted cell path, e.g. 'ccp1.temp'")
    message: str
    severity: Severity

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def error_id(self) -> str:
        """Stable identity used to mark this issue resolved."""
        return f"{self.row_index}:{self.field}:{self.message}"


class FormSummary(BaseModel):
    """Form-level counts of a validation pass."""
    total_errors: int = Field(0, alias="totalErrors")
    total_warnings: int = Field(0, alias="totalWarnings")
    compliant_entries: int = Field(0, alias="compliantEntries")
    total_entries: int = Field(0, alias="totalEntries")

    model_config = {"populate_by_name": True, "frozen": True}

    @computed_field(alias="complianceRate")
    @property
    def compliance_rate(self) -> int:
        """Percentage of rows with data that carry no errors, rounded for display."""
        if self.total_entries == 0:
            return 0
        # Round half up, matching the form application's display
        return int(100 * self.compliant_entries / self.total_entries + 0.5)


class FormValidationResult(BaseModel):
    """Result of validating a whole form."""
    is_valid: bool = Field(..., alias="isValid")
    errors: List[ValidationIssue] = Field(default_factory=list)
    summary: FormSummary = Field(default_factory=FormSummary)

    model_config = {"populate_by_name": True, "frozen": True}


class HighlightResult(BaseModel):
    """Whether a UI cell should be highlighted, and how."""
    highlight: bool = False
    severity: Optional[Severity] = None

    model_config = {"frozen": True}


class Violation(BaseModel):
    """A stage reading that breaks its rule."""
    stage: Stage
    reading: float
    message: str
    kind: Literal["temperature", "time"] = "temperature"
    elapsed_minutes: Optional[int] = Field(None, alias="elapsedMinutes")

    model_config = {"populate_by_name": True, "frozen": True}
