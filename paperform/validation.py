"""
PaperForm Compliance Validation Engine

Checks hand-recorded cooking/cooling readings against the HACCP stage rules
and aggregates the results per row and per form. Every function is a pure
function of its inputs: nothing is cached and form data never raises. A
reading that is missing or cannot be read is "not yet validatable", not a
violation.

Severities:
- error: a temperature out of bounds or a cooling window exceeded. Blocks
  marking the form Complete.
- warning: a sanity signal (CCP 2 reading above CCP 1, or, when the policy
  asks for it, unreadable input and implausible time gaps).

Example usage:
    from paperform.validation import validate_form
    from paperform.models import PaperForm

    form = PaperForm(**form_data)
    result = validate_form(form)
    print(f"{result.summary.compliance_rate}% compliant, "
          f"{result.summary.total_errors} errors")
"""

import logging
from typing import Any, Dict, List, Optional, Union

from paperform.models import (
    CellValidationResult,
    FormRow,
    FormSummary,
    FormType,
    FormValidationResult,
    HighlightResult,
    PaperForm,
    Severity,
    Stage,
    ValidationIssue,
    Violation,
)
from paperform.parsing import (
    format_number,
    is_unparseable,
    parse_temperature,
    parse_time_of_day,
    time_difference_minutes,
)
from paperform.policy import ValidationPolicy, resolve_policy
from paperform.rules import StageRule, get_stage_rule, reference_time

logger = logging.getLogger(__name__)


def _check_bounds(stage: Stage, temperature: float, rule: StageRule) -> Optional[Violation]:
    if rule.min_f is not None and temperature < rule.min_f:
        return Violation(
            stage=stage,
            reading=temperature,
            message=(f"Temperature {format_number(temperature)}°F is below minimum "
                     f"required {format_number(rule.min_f)}°F"),
        )

    if rule.max_f is not None and temperature > rule.max_f:
        return Violation(
            stage=stage,
            reading=temperature,
            message=(f"Temperature {format_number(temperature)}°F is above maximum "
                     f"allowed {format_number(rule.max_f)}°F"),
        )

    return None


def _check_time_window(
    stage: Stage,
    temperature: float,
    rule: StageRule,
    reference: Optional[str],
    comparison: Optional[str]
) -> Optional[Violation]:
    if rule.time_limit is None or not reference or not comparison:
        return None

    elapsed = time_difference_minutes(reference, comparison)
    if elapsed is None or elapsed <= rule.time_limit_minutes:
        return None

    unit = rule.time_unit
    if unit == "hours":
        shown = f"{elapsed / 60:.2f}"
    else:
        shown = str(elapsed)

    return Violation(
        stage=stage,
        reading=temperature,
        kind="time",
        elapsed_minutes=elapsed,
        message=f"Time limit exceeded: {shown} {unit} (limit: {format_number(rule.time_limit)} {unit})",
    )


def evaluate(
    stage: Union[Stage, str],
    reading: Union[str, float, None],
    reference_time: Optional[str] = None,
    comparison_time: Optional[str] = None,
    form_type: FormType = FormType.COOKING_AND_COOLING,
    policy: Optional[ValidationPolicy] = None
) -> Optional[Violation]:
    """
    Evaluate one stage reading against its rule.

    The temperature bound is checked first; the time window only when the
    temperature is within bounds and both times are given.

    Args:
        stage: Stage name, e.g. "coolingTo80"
        reading: Temperature as typed, or already parsed
        reference_time: Start of the stage's time window (H:MM)
        comparison_time: Time of this reading (H:MM)
        form_type: Form variant selecting the rule table
        policy: Validation policy (environment policy when None)

    Returns:
        The violation, or None when the reading complies or is not filled in

    Raises:
        UnknownStageError: If stage is not a known stage name
    """
    rule = get_stage_rule(stage, form_type, resolve_policy(policy))

    if isinstance(reading, str) or reading is None:
        temperature = parse_temperature(reading)
    else:
        temperature = float(reading)

    if temperature is None:
        return None

    violation = _check_bounds(rule.stage, temperature, rule)
    if violation is not None:
        return violation

    return _check_time_window(rule.stage, temperature, rule, reference_time, comparison_time)


def validate_cell(
    temp: Optional[str],
    stage: Union[Stage, str],
    reference_time: Optional[str] = None,
    comparison_time: Optional[str] = None,
    form_type: FormType = FormType.COOKING_AND_COOLING,
    policy: Optional[ValidationPolicy] = None
) -> CellValidationResult:
    """
    Validate a single temperature cell.

    Args:
        temp: Temperature text as typed
        stage: Stage name
        reference_time: Start of the time window, for cooling stages
        comparison_time: Time of this reading, for cooling stages
        form_type: Form variant selecting the rule table
        policy: Validation policy (environment policy when None)

    Returns:
        CellValidationResult; empty input is valid
    """
    violation = evaluate(stage, temp, reference_time, comparison_time, form_type, policy)
    if violation is None:
        return CellValidationResult(is_valid=True)
    return CellValidationResult(is_valid=False, error_message=violation.message)


def row_has_data(row: FormRow) -> bool:
    """A row counts once it has a product type or any stage temperature."""
    if row.type:
        return True
    return any(row.cell(stage).temp for stage in Stage)


def _policy_warnings(
    row: FormRow,
    row_index: int,
    stage: Stage,
    rule: StageRule,
    policy: ValidationPolicy
) -> List[ValidationIssue]:
    warnings: List[ValidationIssue] = []
    cell = row.cell(stage)

    if policy.flag_unparseable_input:
        if is_unparseable(cell.temp, parse_temperature):
            warnings.append(ValidationIssue(
                row_index=row_index,
                field=f"{stage.value}.temp",
                message=f"Temperature '{cell.temp}' could not be read",
                severity=Severity.WARNING,
            ))
        if is_unparseable(cell.time, parse_time_of_day):
            warnings.append(ValidationIssue(
                row_index=row_index,
                field=f"{stage.value}.time",
                message=f"Time '{cell.time}' is not a valid HH:MM time",
                severity=Severity.WARNING,
            ))

    limit = policy.max_plausible_gap_minutes
    if limit is not None and rule.time_limit is not None and cell.temp:
        start = reference_time(row, stage)
        elapsed = time_difference_minutes(start, cell.time)
        if elapsed is not None and elapsed > limit:
            warnings.append(ValidationIssue(
                row_index=row_index,
                field=f"{stage.value}.time",
                message=(f"Time gap of {elapsed} minutes from {start} to {cell.time} "
                         f"is implausible; check for swapped times"),
                severity=Severity.WARNING,
            ))

    return warnings


def validate_row(
    row: FormRow,
    row_index: int,
    form_type: FormType = FormType.COOKING_AND_COOLING,
    policy: Optional[ValidationPolicy] = None
) -> List[ValidationIssue]:
    """
    Validate every stage of one form row.

    Args:
        row: The row to check
        row_index: Zero-based position of the row in the form
        form_type: Form variant selecting the rule table
        policy: Validation policy (environment policy when None)

    Returns:
        Issues in stage order, followed by cross-stage warnings. Empty for
        rows without data.
    """
    if not row_has_data(row):
        return []

    policy = resolve_policy(policy)
    issues: List[ValidationIssue] = []

    for stage in Stage:
        rule = get_stage_rule(stage, form_type, policy)
        cell = row.cell(stage)

        if cell.temp:
            result = validate_cell(
                cell.temp,
                stage,
                reference_time(row, stage),
                cell.time,
                form_type=form_type,
                policy=policy,
            )
            if not result.is_valid and result.error_message:
                issues.append(ValidationIssue(
                    row_index=row_index,
                    field=f"{stage.value}.temp",
                    message=result.error_message,
                    severity=Severity.ERROR,
                ))

        issues.extend(_policy_warnings(row, row_index, stage, rule, policy))

    # Cooling readings should not exceed the cook reading before them
    ccp1_temp = parse_temperature(row.ccp1.temp)
    ccp2_temp = parse_temperature(row.ccp2.temp)
    if ccp1_temp is not None and ccp2_temp is not None and ccp2_temp > ccp1_temp:
        issues.append(ValidationIssue(
            row_index=row_index,
            field="ccp2.temp",
            message=(f"CCP2 temperature ({format_number(ccp2_temp)}°F) should not be higher "
                     f"than CCP1 temperature ({format_number(ccp1_temp)}°F)"),
            severity=Severity.WARNING,
        ))

    return issues


def validate_form(form: PaperForm, policy: Optional[ValidationPolicy] = None) -> FormValidationResult:
    """
    Validate an entire form.

    Rows without data are skipped and do not count towards compliance. A row
    is compliant when it has no error-severity issues; warnings are tolerated.

    Args:
        form: The form to check
        policy: Validation policy (environment policy when None)

    Returns:
        FormValidationResult with the flat issue list and summary counts
    """
    policy = resolve_policy(policy)
    issues: List[ValidationIssue] = []
    compliant_entries = 0
    total_entries = 0

    for index, row in enumerate(form.entries):
        if not row_has_data(row):
            continue

        total_entries += 1
        row_issues = validate_row(row, index, form.form_type, policy)
        issues.extend(row_issues)

        if not any(issue.severity == Severity.ERROR for issue in row_issues):
            compliant_entries += 1

    total_errors = sum(1 for issue in issues if issue.severity == Severity.ERROR)
    total_warnings = sum(1 for issue in issues if issue.severity == Severity.WARNING)

    logger.debug(
        f"Validated form {form.id}: {total_entries} rows with data, "
        f"{total_errors} errors, {total_warnings} warnings"
    )

    return FormValidationResult(
        is_valid=total_errors == 0,
        errors=issues,
        summary=FormSummary(
            total_errors=total_errors,
            total_warnings=total_warnings,
            compliant_entries=compliant_entries,
            total_entries=total_entries,
        ),
    )


def should_highlight_cell(
    form: PaperForm,
    row_index: int,
    field: str,
    policy: Optional[ValidationPolicy] = None
) -> HighlightResult:
    """
    Decide whether a form cell should be highlighted.

    Runs a full form validation on every call. Forms hold at most a few
    dozen rows, so there is no cache to invalidate.

    Args:
        form: The form being rendered
        row_index: Zero-based row position
        field: Dotted cell path, e.g. "coolingTo80.temp"
        policy: Validation policy (environment policy when None)

    Returns:
        HighlightResult with the severity of the first matching issue
    """
    validation = validate_form(form, policy)
    for issue in validation.errors:
        if issue.row_index == row_index and issue.field == field:
            return HighlightResult(highlight=True, severity=issue.severity)

    return HighlightResult(highlight=False, severity=None)


def get_form_validation_summary(form: PaperForm, policy: Optional[ValidationPolicy] = None) -> Dict[str, Any]:
    """
    Summarize a form for the admin dashboard.

    Returns:
        Dictionary with has_errors, error_count, warning_count, the unrounded
        compliance_rate percentage, and row-numbered messages
    """
    validation = validate_form(form, policy)
    summary = validation.summary

    if summary.total_entries > 0:
        compliance_rate = summary.compliant_entries / summary.total_entries * 100
    else:
        compliance_rate = 0.0

    return {
        'has_errors': not validation.is_valid,
        'error_count': summary.total_errors,
        'warning_count': summary.total_warnings,
        'compliance_rate': compliance_rate,
        'errors': [
            {
                'message': f"Row {issue.row_index + 1}: {issue.message}",
                'severity': issue.severity.value,
            }
            for issue in validation.errors
        ],
    }
