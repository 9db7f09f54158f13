"""
Corrective-action text synthesis.

The "Corrective Actions & comments" box at the bottom of every form gets one
line per out-of-tolerance reading, written automatically as the operator
fills the form in. Lines are plain text, one per violation, each starting
with a row/stage prefix so it can be replaced or removed when the reading
changes:

    Row 2 CCP1 162°F — below 166°F
    Row 2 Time 80°F Cooling 110min — >105min
    Row 3 Time 80°F Cooling set — missing CCP2 time

Operator-written lines are never touched. The box is stored raw and shown
numbered ("1. ...") in the form.

Example usage:
    from paperform.corrective import generate_corrective_actions, format_numbered

    text = generate_corrective_actions(form)
    print(format_numbered(text))
"""

import logging
import re
from typing import Iterable, List, Mapping, Optional

from paperform.models import FormRow, FormType, PaperForm, Stage
from paperform.parsing import format_number, time_difference_minutes
from paperform.policy import ValidationPolicy, resolve_policy
from paperform.rules import STAGE_LABELS, StageRule, get_stage_rules, reference_time
from paperform.validation import evaluate, row_has_data

logger = logging.getLogger(__name__)

_NUMBERING = re.compile(r"^\s*\d+\.\s*")
_BOUND_MESSAGE = re.compile(
    r"^Temperature -?[0-9.]+°F is (below minimum required|above maximum allowed) (-?[0-9.]+)°F$"
)
_AUTO_LINE = re.compile(
    r"^Row \d+ (?:Time )?(?:"
    + "|".join(re.escape(label) for label in STAGE_LABELS.values())
    + r") "
)

_REFERENCE_LABELS = {
    Stage.COOLING_TO_80: "CCP2",
    Stage.COOLING_TO_54: "80°F Cooling or CCP2",
}


def format_numbered(raw: Optional[str]) -> str:
    """Number the non-empty lines of raw comment text: '1. ...', '2. ...'."""
    if not raw:
        return ""
    lines = [line.strip() for line in raw.split("\n") if line.strip()]
    return "\n".join(f"{idx}. {line}" for idx, line in enumerate(lines, start=1))


def strip_numbering(numbered: Optional[str]) -> str:
    """Inverse of format_numbered: drop the 'N. ' prefixes and blank lines."""
    if not numbered:
        return ""
    lines = [_NUMBERING.sub("", line).strip() for line in numbered.split("\n")]
    return "\n".join(line for line in lines if line)


def comment_prefix(row_index: int, stage: Stage) -> str:
    """Prefix shared by all temperature comments for one row/stage."""
    return f"Row {row_index + 1} {STAGE_LABELS[Stage(stage)]} "


def time_comment_prefix(row_index: int, stage: Stage) -> str:
    """Prefix shared by all time-window comments for one row/stage."""
    return f"Row {row_index + 1} Time {STAGE_LABELS[Stage(stage)]} "


def violation_comment(row_index: int, stage: Stage, temperature: float, message: str) -> str:
    """
    Build the one-line comment for a temperature violation.

    Bound messages are shortened to 'below 166°F' / 'above 80°F'.
    """
    match = _BOUND_MESSAGE.match(message)
    if match:
        direction = "below" if match.group(1).startswith("below") else "above"
        reason = f"{direction} {match.group(2)}°F"
    else:
        reason = message
    return f"{comment_prefix(row_index, stage)}{format_number(temperature)}°F — {reason}"


def time_comment(row_index: int, stage: Stage, elapsed_minutes: int, rule: StageRule) -> str:
    """Build the one-line comment for an exceeded cooling window."""
    if rule.time_unit == "hours":
        shown = f"{elapsed_minutes / 60:.2f}h"
        limit = f"{format_number(rule.time_limit)}h"
    else:
        shown = f"{elapsed_minutes}min"
        limit = f"{format_number(rule.time_limit)}min"
    return f"{time_comment_prefix(row_index, stage)}{shown} — >{limit}"


def missing_reference_comment(row_index: int, stage: Stage) -> str:
    """Build the comment for a cooling time entered without its start time."""
    return f"{time_comment_prefix(row_index, stage)}set — missing {_REFERENCE_LABELS[Stage(stage)]} time"


def _lines(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return text.split("\n")


def add_comment(text: Optional[str], comment: str) -> str:
    """Append a comment line unless it is already present."""
    lines = _lines(text)
    if comment in lines:
        return "\n".join(lines)
    return "\n".join(lines + [comment])


def remove_comments(text: Optional[str], prefix: str) -> str:
    """Remove every line starting with prefix."""
    return "\n".join(line for line in _lines(text) if not line.startswith(prefix))


def _temperature_comments(
    row: FormRow,
    row_index: int,
    stage: Stage,
    form_type: FormType,
    policy: ValidationPolicy
) -> List[str]:
    # Temperature comments are about the bound only; windows get their own line
    violation = evaluate(stage, row.cell(stage).temp, form_type=form_type, policy=policy)
    if violation is None:
        return []
    return [violation_comment(row_index, stage, violation.reading, violation.message)]


def _time_comments(row: FormRow, row_index: int, stage: Stage, rule: StageRule) -> List[str]:
    if rule.time_limit is None:
        return []

    comparison = row.cell(stage).time
    if not comparison:
        return []

    start = reference_time(row, stage)
    if not start:
        return [missing_reference_comment(row_index, stage)]

    elapsed = time_difference_minutes(start, comparison)
    if elapsed is not None and elapsed > rule.time_limit_minutes:
        return [time_comment(row_index, stage, elapsed, rule)]
    return []


def _apply(text: str, prefix: str, comments: Iterable[str]) -> str:
    text = remove_comments(text, prefix)
    for comment in comments:
        text = add_comment(text, comment)
    return text


def _row_comments(
    row: FormRow,
    row_index: int,
    form_type: FormType,
    rules: Mapping[Stage, StageRule],
    policy: ValidationPolicy
) -> List[str]:
    """All automatic lines for one row, in stage order; none for rows without data."""
    if not row_has_data(row):
        return []
    comments: List[str] = []
    for stage in Stage:
        comments.extend(_temperature_comments(row, row_index, stage, form_type, policy))
        comments.extend(_time_comments(row, row_index, stage, rules[stage]))
    return comments


def _rewrite_row(
    text: str,
    row: FormRow,
    row_index: int,
    form_type: FormType,
    rules: Mapping[Stage, StageRule],
    policy: ValidationPolicy
) -> str:
    for stage in Stage:
        text = remove_comments(text, comment_prefix(row_index, stage))
        text = remove_comments(text, time_comment_prefix(row_index, stage))
    for comment in _row_comments(row, row_index, form_type, rules, policy):
        text = add_comment(text, comment)
    return text


def update_for_cell_change(
    text: Optional[str],
    form: PaperForm,
    row_index: int,
    field: str,
    value: object,
    policy: Optional[ValidationPolicy] = None
) -> str:
    """
    Update corrective-action text after one cell changed.

    A temperature change replaces that row/stage's temperature comment. A
    time change re-checks every cooling window of the row, since the CCP 2
    and 80°F times start the later windows. Rows without data get no
    automatic lines, so an edit that fills in or empties a row's product
    type or temperatures rewrites all of that row's lines.

    Args:
        text: Current raw comment text
        form: The form before the change
        row_index: Zero-based row of the changed cell
        field: "type" or a dotted cell path, e.g. "ccp1.temp"
        value: New cell value
        policy: Validation policy (environment policy when None)

    Returns:
        Updated raw comment text
    """
    text = text or ""
    new_value = "" if value is None else str(value)

    parts = field.split(".")
    if field == "type":
        stage = None
    elif len(parts) == 2 and parts[1] in ("temp", "time"):
        try:
            stage = Stage(parts[0])
        except ValueError:
            return text
    else:
        return text

    if row_index < 0 or row_index >= len(form.entries):
        logger.warning(f"Ignoring change to {field} on missing row {row_index} of form {form.id}")
        return text

    policy = resolve_policy(policy)
    rules = get_stage_rules(form.form_type, policy)

    before = form.entries[row_index]
    if stage is None:
        row = before.model_copy(update={"type": new_value})
    else:
        row = before.with_cell(stage, **{parts[1]: new_value})

    if row_has_data(row) != row_has_data(before):
        return _rewrite_row(text, row, row_index, form.form_type, rules, policy)
    if stage is None or not row_has_data(row):
        return text

    if parts[1] == "temp":
        return _apply(
            text,
            comment_prefix(row_index, stage),
            _temperature_comments(row, row_index, stage, form.form_type, policy),
        )

    for windowed in Stage:
        if rules[windowed].time_limit is None:
            continue
        text = _apply(
            text,
            time_comment_prefix(row_index, windowed),
            _time_comments(row, row_index, windowed, rules[windowed]),
        )
    return text


def generate_corrective_actions(form: PaperForm, policy: Optional[ValidationPolicy] = None) -> str:
    """
    Rebuild all automatic corrective-action lines for a form.

    Operator-written lines already in the form are kept first, in order;
    automatic lines follow in row and stage order.

    Args:
        form: The form to summarize
        policy: Validation policy (environment policy when None)

    Returns:
        Raw corrective-action text
    """
    policy = resolve_policy(policy)
    rules = get_stage_rules(form.form_type, policy)

    manual = [line for line in _lines(form.corrective_actions_comments)
              if line.strip() and not _AUTO_LINE.match(line)]

    generated: List[str] = []
    for index, row in enumerate(form.entries):
        generated.extend(_row_comments(row, index, form.form_type, rules, policy))

    logger.debug(f"Generated {len(generated)} corrective-action lines for form {form.id}")
    return "\n".join(manual + generated)
