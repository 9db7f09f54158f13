"""
PaperForm FastAPI Application

Validation service for the digitized HACCP cooking/cooling forms. The form
application posts the current form and gets back highlight decisions,
form-level compliance, corrective-action text and the derived form status.
Every endpoint is a pure request -> response mapping; nothing is stored.

Example usage:
    # Start the server
    uvicorn app:app --host 0.0.0.0 --port 8000 --reload

    # Health check
    curl http://localhost:8000/health
"""

import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from paperform import __version__
from paperform.corrective import format_numbered, generate_corrective_actions, update_for_cell_change
from paperform.errors import (
    FormStatusError,
    UnknownStageError,
    form_status_response,
    unknown_stage_response,
    validation_error_response,
)
from paperform.forms import dump_form, get_form_type_display_name
from paperform.logging import RequestLoggingMiddleware, get_logger, log_with_context, setup_logging
from paperform.models import FormType, PaperForm
from paperform.policy import get_validation_policy
from paperform.rules import get_stage_rules
from paperform.status import complete_form, derive_status, resolve_error, unresolve_error, unresolved_issues
from paperform.validation import should_highlight_cell, validate_cell, validate_form

# Initialize structured logging
setup_logging(level=os.environ.get("LOG_LEVEL", "INFO"), format_type=os.environ.get("LOG_FORMAT", "json"))
logger = get_logger(__name__)

# Environment configuration
DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",") if o.strip()]
# Highlighting re-validates per rendered cell, so the default limit is generous
RATE_LIMIT_PER_MIN = int(os.environ.get("RATE_LIMIT_PER_MIN", "600"))

limiter = Limiter(key_func=get_remote_address)


def get_rate_limit_decorator():
    """
    Get rate limit decorator, with option to disable for testing.

    Returns:
        Decorator function for rate limiting
    """
    if os.environ.get("PAPERFORM_DISABLE_RATELIMIT", "").lower() in ["1", "true"]:
        def no_limit_decorator(func):
            return func
        return no_limit_decorator
    return limiter.limit(f"{RATE_LIMIT_PER_MIN}/minute")


class CellRequest(BaseModel):
    """Single-cell check, as done while the operator types."""
    temp: str = ""
    stage: str
    reference_time: Optional[str] = Field(None, alias="referenceTime")
    comparison_time: Optional[str] = Field(None, alias="comparisonTime")
    form_type: FormType = Field(FormType.COOKING_AND_COOLING, alias="formType")

    model_config = {"populate_by_name": True}


class HighlightRequest(BaseModel):
    """Highlight lookup for one cell of a form."""
    form: PaperForm
    row_index: int = Field(..., ge=0, alias="rowIndex")
    field: str

    model_config = {"populate_by_name": True}


class CellChange(BaseModel):
    """A single cell edit."""
    row_index: int = Field(..., ge=0, alias="rowIndex")
    field: str
    value: Any = ""

    model_config = {"populate_by_name": True}


class CorrectiveRequest(BaseModel):
    """Corrective-action text for a form, optionally after one cell edit."""
    form: PaperForm
    change: Optional[CellChange] = None


class StatusRequest(BaseModel):
    """Status derivation, error resolution and completion."""
    form: PaperForm
    resolve: List[str] = Field(default_factory=list)
    unresolve: List[str] = Field(default_factory=list)
    complete: bool = False


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body errors with hints instead of FastAPI's default 422 body."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    log_with_context(logger, "warning", "Rejected request body", request=request, errors=messages)
    return validation_error_response(messages, code=422)


async def unknown_stage_handler(request: Request, exc: UnknownStageError) -> JSONResponse:
    return unknown_stage_response(exc)


async def form_status_handler(request: Request, exc: FormStatusError) -> JSONResponse:
    return form_status_response(exc)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    tags_metadata = [
        {
            "name": "validation",
            "description": "Cell, row and form compliance checks"
        },
        {
            "name": "corrective",
            "description": "Corrective-action text synthesis"
        },
        {
            "name": "status",
            "description": "Form status, error resolution and completion"
        },
        {
            "name": "rules",
            "description": "Stage limits per form variant"
        },
        {
            "name": "health",
            "description": "System health and status endpoints"
        }
    ]

    app = FastAPI(
        title="PaperForm",
        description="Compliance checks for HACCP cooking and cooling forms",
        version=__version__,
        docs_url="/api-docs",
        redoc_url="/redoc",
        openapi_tags=tags_metadata
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(UnknownStageError, unknown_stage_handler)
    app.add_exception_handler(FormStatusError, form_status_handler)

    return app


app = create_app()


@app.get("/health", tags=["health"])
async def health_check() -> JSONResponse:
    """
    Health check endpoint for monitoring and load balancer readiness.

    Example:
        >>> # GET /health
        >>> {"status": "healthy", "service": "paperform", "version": "0.1.0"}
    """
    health_data: Dict[str, Any] = {
        "status": "healthy",
        "service": "paperform",
        "version": __version__
    }
    return JSONResponse(content=health_data, status_code=200)


@app.get("/api/rules/{form_type}", tags=["rules"])
async def get_rules(form_type: str) -> JSONResponse:
    """
    Stage limits for a form variant.

    Example:
        GET /api/rules/BAGEL_DOG_COOKING_COOLING
    """
    try:
        variant = FormType(form_type)
    except ValueError:
        return validation_error_response([f"Unknown formType: {form_type}"], code=404, form_type=form_type)

    stage_rules = get_stage_rules(variant, get_validation_policy())
    return JSONResponse(content={
        "formType": variant.value,
        "displayName": get_form_type_display_name(variant),
        "stages": {
            stage.value: rule.model_dump(mode="json", exclude={"stage"})
            for stage, rule in stage_rules.items()
        },
    })


@app.post("/api/validate", tags=["validation"])
@get_rate_limit_decorator()
async def validate_form_endpoint(request: Request, form: PaperForm) -> JSONResponse:
    """
    Validate a whole form.

    Returns the issue list, summary counts with compliance rate, and the
    status the form should carry.
    """
    policy = get_validation_policy()
    result = validate_form(form, policy)

    log_with_context(
        logger, "info", "Form validated", request=request,
        form_id=form.id, total_errors=result.summary.total_errors,
        total_warnings=result.summary.total_warnings
    )

    body = result.model_dump(mode="json", by_alias=True)
    body["status"] = derive_status(form, policy).value
    return JSONResponse(content=body)


@app.post("/api/validate/cell", tags=["validation"])
@get_rate_limit_decorator()
async def validate_cell_endpoint(request: Request, payload: CellRequest) -> JSONResponse:
    """Check one temperature cell against its stage rule."""
    result = validate_cell(
        payload.temp,
        payload.stage,
        payload.reference_time,
        payload.comparison_time,
        form_type=payload.form_type,
        policy=get_validation_policy(),
    )
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True, exclude_none=True))


@app.post("/api/highlight", tags=["validation"])
@get_rate_limit_decorator()
async def highlight_endpoint(request: Request, payload: HighlightRequest) -> JSONResponse:
    """Decide whether one cell should be highlighted."""
    result = should_highlight_cell(payload.form, payload.row_index, payload.field, get_validation_policy())
    return JSONResponse(content=result.model_dump(mode="json"))


@app.post("/api/corrective-actions", tags=["corrective"])
@get_rate_limit_decorator()
async def corrective_actions_endpoint(request: Request, payload: CorrectiveRequest) -> JSONResponse:
    """
    Corrective-action text for a form.

    With a change, the form's stored text is updated incrementally for that
    one edit; without, every automatic line is rebuilt.
    """
    policy = get_validation_policy()
    form = payload.form

    if payload.change is not None:
        raw = update_for_cell_change(
            form.corrective_actions_comments,
            form,
            payload.change.row_index,
            payload.change.field,
            payload.change.value,
            policy,
        )
    else:
        raw = generate_corrective_actions(form, policy)

    return JSONResponse(content={
        "correctiveActionsComments": raw,
        "numbered": format_numbered(raw),
    })


@app.post("/api/status", tags=["status"])
@get_rate_limit_decorator()
async def status_endpoint(request: Request, payload: StatusRequest) -> JSONResponse:
    """
    Resolve or reopen issues, derive the status, and optionally complete.

    Completion of a form with unresolved errors answers 409.
    """
    policy = get_validation_policy()
    form = payload.form

    for error_id in payload.resolve:
        form = resolve_error(form, error_id)
    for error_id in payload.unresolve:
        form = unresolve_error(form, error_id)

    form = form.model_copy(update={"status": derive_status(form, policy)})
    if payload.complete:
        form = complete_form(form, policy)
        log_with_context(logger, "info", "Form completed", request=request, form_id=form.id)

    return JSONResponse(content={
        "status": form.status.value,
        "unresolved": [
            issue.model_dump(mode="json", by_alias=True) | {"errorId": issue.error_id}
            for issue in unresolved_issues(form, policy)
        ],
        "form": dump_form(form),
    })


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        reload=os.environ.get("ENVIRONMENT", "production").lower() in ["development", "dev", "local"]
    )
