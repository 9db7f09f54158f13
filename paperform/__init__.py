"""
PaperForm Core Module

Compliance engine for digitized HACCP cooking/cooling paper forms:
- Reading parsers for hand-entered temperatures and times
- Stage rule table per form variant
- Cell, row and form validation with highlight lookups
- Corrective-action text, form status and error resolution
- Admin reports

The validation, corrective-action and status modules need no web server and
are used directly by the CLI; only `errors` and `logging` import FastAPI and
Starlette, for the JSON error responses and request middleware of the service.

Example usage:
    from paperform.validation import validate_form, should_highlight_cell
    from paperform.corrective import generate_corrective_actions
"""

__version__ = "0.1.0"
__all__ = [
    "corrective",
    "errors",
    "forms",
    "models",
    "parsing",
    "policy",
    "report",
    "rules",
    "status",
    "validation",
]
