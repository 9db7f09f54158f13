"""
Form status derivation and error resolution.

A form's status follows its validation state while it is being filled in:
any error-severity issue moves it to Error, and clearing the last error moves
it back to In Progress. Complete and Approved forms are never changed by
validation. An admin can mark individual issues resolved; resolution is
stored on the form as issue identities because the issues themselves are
recomputed on every pass.

Example usage:
    from paperform.status import derive_status, resolve_error

    form = form.model_copy(update={"status": derive_status(form)})
    form = resolve_error(form, issue.error_id)
"""

import logging
from typing import List, Optional

from paperform.errors import FormStatusError
from paperform.models import FormStatus, PaperForm, Severity, ValidationIssue
from paperform.policy import ValidationPolicy
from paperform.validation import validate_form

logger = logging.getLogger(__name__)

LOCKED_STATUSES = (FormStatus.COMPLETE, FormStatus.APPROVED)


def derive_status(form: PaperForm, policy: Optional[ValidationPolicy] = None) -> FormStatus:
    """
    Status the form should have given its current readings.

    Args:
        form: The form to inspect
        policy: Validation policy (environment policy when None)

    Returns:
        The derived FormStatus
    """
    if form.status in LOCKED_STATUSES:
        return form.status

    validation = validate_form(form, policy)
    has_errors = any(issue.severity == Severity.ERROR for issue in validation.errors)

    if has_errors:
        return FormStatus.ERROR
    if form.status == FormStatus.ERROR:
        return FormStatus.IN_PROGRESS
    return form.status


def unresolved_issues(form: PaperForm, policy: Optional[ValidationPolicy] = None) -> List[ValidationIssue]:
    """Issues of the current validation pass that nobody marked resolved."""
    resolved = set(form.resolved_errors)
    return [issue for issue in validate_form(form, policy).errors if issue.error_id not in resolved]


def resolve_error(form: PaperForm, error_id: str) -> PaperForm:
    """Return a copy of the form with error_id marked resolved."""
    if error_id in form.resolved_errors:
        return form
    logger.info(f"Resolved {error_id} on form {form.id}")
    return form.model_copy(update={"resolved_errors": [*form.resolved_errors, error_id]})


def unresolve_error(form: PaperForm, error_id: str) -> PaperForm:
    """Return a copy of the form with error_id no longer resolved."""
    if error_id not in form.resolved_errors:
        return form
    logger.info(f"Reopened {error_id} on form {form.id}")
    return form.model_copy(
        update={"resolved_errors": [rid for rid in form.resolved_errors if rid != error_id]}
    )


def complete_form(form: PaperForm, policy: Optional[ValidationPolicy] = None) -> PaperForm:
    """
    Mark a form Complete.

    Raises:
        FormStatusError: While unresolved error-severity issues remain.
            Warnings never block completion.
    """
    if form.status in LOCKED_STATUSES:
        return form

    blocking = [
        issue.error_id
        for issue in unresolved_issues(form, policy)
        if issue.severity == Severity.ERROR
    ]
    if blocking:
        raise FormStatusError(form.id, blocking)

    logger.info(f"Form {form.id} marked Complete")
    return form.model_copy(update={"status": FormStatus.COMPLETE})
