"""
PaperForm CLI Main Module

Command-line interface for PaperForm using Typer.
Validates exported form JSON, prints corrective-action text and writes
admin reports.
"""

import json
import os
from pathlib import Path
from typing import Optional

import typer

from paperform.corrective import format_numbered, generate_corrective_actions
from paperform.errors import FormDataError, FormStatusError
from paperform.forms import get_form_type_display_name, load_form, load_forms
from paperform.logging import get_logger, setup_logging
from paperform.models import FormType, Severity
from paperform.policy import get_validation_policy
from paperform.report import write_report
from paperform.rules import get_stage_rules
from paperform.status import complete_form, derive_status, unresolved_issues
from paperform.validation import should_highlight_cell, validate_form

logger = get_logger(__name__)

app = typer.Typer(
    name="paperform",
    help="PaperForm - HACCP cooking/cooling form compliance checks",
    add_completion=False
)


@app.callback()
def main(
    log_level: str = typer.Option(os.environ.get("LOG_LEVEL", "WARNING"), "--log-level", help="Logging level"),
    log_format: str = typer.Option(os.environ.get("LOG_FORMAT", "text"), "--log-format", help="Log format: json or text")
) -> None:
    """PaperForm - HACCP cooking/cooling form compliance checks."""
    setup_logging(level=log_level, format_type=log_format)


def _load_or_exit(form_json: Path):
    try:
        return load_form(form_json)
    except FormDataError as e:
        typer.echo(f"Failed to load form: {e}", err=True)
        raise typer.Exit(2)


@app.command()
def validate(
    form_json: Path = typer.Argument(..., help="Path to form JSON file"),
    json_output: bool = typer.Option(False, "--json", help="Print the full result as JSON")
) -> None:
    """
    Validate a form and list every out-of-tolerance reading.

    Exits with status 1 when the form has errors.
    """
    form = _load_or_exit(form_json)
    policy = get_validation_policy()
    result = validate_form(form, policy)

    if json_output:
        typer.echo(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))
    else:
        summary = result.summary
        typer.echo(f"Form: {form.id} ({get_form_type_display_name(form.form_type)})")
        typer.echo(f"Rows with data: {summary.total_entries}")
        typer.echo(f"Compliant rows: {summary.compliant_entries} ({summary.compliance_rate}%)")
        typer.echo(f"Errors: {summary.total_errors}")
        typer.echo(f"Warnings: {summary.total_warnings}")

        for issue in result.errors:
            marker = "✗" if issue.severity == Severity.ERROR else "!"
            typer.echo(f"  {marker} Row {issue.row_index + 1} {issue.field}: {issue.message}")

        typer.echo(f"\n{'✓ PASS' if result.is_valid else '✗ FAIL'}")

    if not result.is_valid:
        raise typer.Exit(1)


@app.command()
def highlight(
    form_json: Path = typer.Argument(..., help="Path to form JSON file"),
    row: int = typer.Argument(..., min=1, help="Row number as printed on the form (1-based)"),
    field: str = typer.Argument(..., help="Cell path, e.g. coolingTo80.temp")
) -> None:
    """Show whether one cell would be highlighted."""
    form = _load_or_exit(form_json)
    result = should_highlight_cell(form, row - 1, field, get_validation_policy())

    if result.highlight:
        typer.echo(f"Row {row} {field}: {result.severity.value}")
    else:
        typer.echo(f"Row {row} {field}: ok")


@app.command()
def corrective(
    form_json: Path = typer.Argument(..., help="Path to form JSON file"),
    numbered: bool = typer.Option(False, "--numbered", help="Number lines as shown on the form")
) -> None:
    """Print the corrective-action text for a form."""
    form = _load_or_exit(form_json)
    text = generate_corrective_actions(form, get_validation_policy())

    if numbered:
        text = format_numbered(text)

    if text:
        typer.echo(text)
    else:
        typer.echo("No corrective actions required")


@app.command()
def rules(
    form_type: FormType = typer.Option(FormType.COOKING_AND_COOLING, "--form-type", help="Form variant")
) -> None:
    """List the stage limits for a form variant."""
    typer.echo(get_form_type_display_name(form_type))
    for stage, rule in get_stage_rules(form_type, get_validation_policy()).items():
        typer.echo(f"  {stage.value:<12} {rule.description}")


@app.command()
def status(
    form_json: Path = typer.Argument(..., help="Path to form JSON file"),
    complete: bool = typer.Option(False, "--complete", help="Try to mark the form Complete"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the updated form JSON here")
) -> None:
    """Show the derived status and unresolved issues of a form."""
    form = _load_or_exit(form_json)
    policy = get_validation_policy()

    form = form.model_copy(update={"status": derive_status(form, policy)})
    if complete:
        try:
            form = complete_form(form, policy)
        except FormStatusError as e:
            typer.echo(f"✗ {e}", err=True)
            for error_id in e.blocking:
                typer.echo(f"  - {error_id}", err=True)
            raise typer.Exit(1)

    typer.echo(f"Status: {form.status.value}")
    pending = unresolved_issues(form, policy)
    typer.echo(f"Unresolved issues: {len(pending)}")
    for issue in pending:
        typer.echo(f"  - [{issue.severity.value}] {issue.error_id}")

    if output:
        output.write_text(
            json.dumps(form.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False),
            encoding="utf-8"
        )
        typer.echo(f"Saved: {output}")


@app.command()
def report(
    forms_json: Path = typer.Argument(..., help="JSON file with one form or a list of forms"),
    output_dir: Path = typer.Option(Path("report"), "--output-dir", "-o", help="Directory for CSV reports")
) -> None:
    """Write issues.csv and compliance.csv for a set of forms."""
    try:
        forms = load_forms(forms_json)
    except FormDataError as e:
        typer.echo(f"Failed to load forms: {e}", err=True)
        raise typer.Exit(2)

    paths = write_report(forms, output_dir, get_validation_policy())
    typer.echo(f"✓ Report written for {len(forms)} form(s)")
    for name, path in paths.items():
        typer.echo(f"  {name}: {path}")


if __name__ == "__main__":
    app()
