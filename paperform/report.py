"""
Admin dashboard reports.

Tabulates validation results across many forms with pandas so reviewers can
sort, filter and export them.

Example usage:
    from paperform.forms import load_forms
    from paperform.report import compliance_frame

    df = compliance_frame(load_forms("week_42.json"))
    print(df.sort_values("compliance_rate").head())
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

import pandas as pd

from paperform.models import PaperForm
from paperform.policy import ValidationPolicy, resolve_policy
from paperform.status import derive_status
from paperform.validation import validate_form

logger = logging.getLogger(__name__)

ISSUE_COLUMNS = [
    "form_id", "form_type", "row", "field", "severity", "message", "error_id", "resolved",
]
COMPLIANCE_COLUMNS = [
    "form_id", "form_type", "title", "status", "total_entries", "compliant_entries",
    "total_errors", "total_warnings", "compliance_rate",
]


def issues_frame(forms: Iterable[PaperForm], policy: Optional[ValidationPolicy] = None) -> pd.DataFrame:
    """
    One row per validation issue across all forms.

    Rows are numbered from 1, as printed on the paper form.
    """
    policy = resolve_policy(policy)
    records = []

    for form in forms:
        resolved = set(form.resolved_errors)
        for issue in validate_form(form, policy).errors:
            records.append({
                "form_id": form.id,
                "form_type": form.form_type.value,
                "row": issue.row_index + 1,
                "field": issue.field,
                "severity": issue.severity.value,
                "message": issue.message,
                "error_id": issue.error_id,
                "resolved": issue.error_id in resolved,
            })

    return pd.DataFrame.from_records(records, columns=ISSUE_COLUMNS)


def compliance_frame(forms: Iterable[PaperForm], policy: Optional[ValidationPolicy] = None) -> pd.DataFrame:
    """One row per form with its summary counts and derived status."""
    policy = resolve_policy(policy)
    records = []

    for form in forms:
        summary = validate_form(form, policy).summary
        records.append({
            "form_id": form.id,
            "form_type": form.form_type.value,
            "title": form.title,
            "status": derive_status(form, policy).value,
            "total_entries": summary.total_entries,
            "compliant_entries": summary.compliant_entries,
            "total_errors": summary.total_errors,
            "total_warnings": summary.total_warnings,
            "compliance_rate": summary.compliance_rate,
        })

    return pd.DataFrame.from_records(records, columns=COMPLIANCE_COLUMNS)


def write_report(
    forms: Iterable[PaperForm],
    output_dir: Union[str, Path],
    policy: Optional[ValidationPolicy] = None
) -> Dict[str, Path]:
    """
    Write issues.csv and compliance.csv for a set of forms.

    Args:
        forms: Forms to report on
        output_dir: Directory to write into (created if missing)
        policy: Validation policy (environment policy when None)

    Returns:
        Mapping of report name to written path
    """
    forms = list(forms)
    policy = resolve_policy(policy)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = {
        "issues": output_dir / "issues.csv",
        "compliance": output_dir / "compliance.csv",
    }
    issues_frame(forms, policy).to_csv(paths["issues"], index=False)
    compliance_frame(forms, policy).to_csv(paths["compliance"], index=False)

    logger.info(f"Wrote report for {len(forms)} form(s) to {output_dir}")
    return paths
