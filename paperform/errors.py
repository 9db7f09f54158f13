"""Centralized error handling and response helpers."""

from typing import List, Optional, Dict, Any
from fastapi.responses import JSONResponse


class PaperFormError(Exception):
    """Base class for PaperForm errors raised at the engine edges."""
    pass


class FormDataError(PaperFormError):
    """Raised when a form document cannot be read or does not match the form schema."""
    pass


class UnknownStageError(PaperFormError, KeyError):
    """
    Raised when a stage name has no rule in the stage table.

    Form data never triggers this; it only happens when a caller asks
    for a rule by name (CLI, API, programmatic lookups).
    """

    def __init__(self, stage: str, known_stages: Optional[List[str]] = None):
        """
        Initialize UnknownStageError.

        Args:
            stage: The stage name that was requested
            known_stages: Stage names that do exist
        """
        self.stage = stage
        self.known_stages = known_stages or []

        msg = f"Unknown stage: {stage}"
        if self.known_stages:
            msg += f" (valid: {', '.join(self.known_stages)})"
        super().__init__(msg)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error_type': 'UnknownStageError',
            'stage': self.stage,
            'known_stages': self.known_stages,
            'message': str(self)
        }


class FormStatusError(PaperFormError):
    """
    Raised when a status transition is not allowed.

    Marking a form Complete is blocked while it still carries
    unresolved error-severity issues.
    """

    def __init__(self, form_id: str, blocking: List[str]):
        self.form_id = form_id
        self.blocking = blocking
        count = len(blocking)
        noun = "error" if count == 1 else "errors"
        super().__init__(f"Form {form_id} cannot be completed: {count} unresolved {noun}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error_type': 'FormStatusError',
            'form_id': self.form_id,
            'blocking_errors': self.blocking,
            'message': str(self)
        }


def validation_error_response(
    errors: List[str],
    code: int = 400,
    form_type: Optional[str] = None,
    hints: Optional[List[str]] = None
) -> JSONResponse:
    """Create standardized validation error response."""

    # Generate actionable hints if not provided
    if not hints:
        hints = []
        error_text = " ".join(errors).lower()

        if "entries" in error_text or "field" in error_text:
            hints.append("Each row needs ccp1, ccp2, coolingTo80, coolingTo54 and finalChill cells")
            hints.append("Cells hold temp, time, initial and dataLog values")
            hints.append("Temperatures and times are sent as strings, e.g. \"166\" and \"14:05\"")

        if "time" in error_text:
            hints.append("Times use 24-hour H:MM or HH:MM format")

        if "formtype" in error_text or "form_type" in error_text:
            hints.append("Supported form types: COOKING_AND_COOLING, PIROSHKI_CALZONE_EMPANADA, BAGEL_DOG_COOKING_COOLING")

    # Take top 3 most relevant hints
    hints = hints[:3]

    response_body = {
        "error": "Validation Error",
        "code": code,
        "messages": errors,
        "hints": hints
    }

    if form_type:
        response_body["formType"] = form_type

    return JSONResponse(status_code=code, content=response_body)


def unknown_stage_response(error: UnknownStageError) -> JSONResponse:
    """Create response for an unknown stage name."""
    return JSONResponse(
        status_code=400,
        content={
            "error": "Unknown Stage",
            "code": 400,
            "stage": error.stage,
            "message": str(error),
            "supported_stages": error.known_stages,
            "hints": [
                "Stage names are case-sensitive",
                "Use camelCase names such as coolingTo80"
            ]
        }
    )


def form_status_response(error: FormStatusError) -> JSONResponse:
    """Create response for a blocked status transition."""
    return JSONResponse(
        status_code=409,
        content={
            "error": "Form Not Completable",
            "code": 409,
            "formId": error.form_id,
            "message": str(error),
            "blockingErrors": error.blocking,
            "hints": [
                "Correct the highlighted readings or resolve each error first",
                "Warnings do not block completion"
            ]
        }
    )
