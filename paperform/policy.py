"""
Validation Policy Module

Provides centralized policy flags for the compliance engine.
All flags default to the forgiving behavior of the paper forms: malformed
readings are treated as "not filled in yet" and any negative time gap is
read as a midnight rollover.

Key features:
- FLAG_UNPARSEABLE_INPUT surfaces malformed temperatures/times as warnings
- MAX_PLAUSIBLE_GAP_MINUTES warns on time windows too long to be real
- FINAL_CHILL_MAX_F_<FORM_TYPE> overrides the final-chill ceiling per variant

Example usage:
    from paperform.policy import get_validation_policy

    policy = get_validation_policy()
    if policy.flag_unparseable_input:
        # Report "abc" in a temperature cell as a warning
        pass
"""

import os
from typing import Dict, Optional

from pydantic import BaseModel, Field

from paperform.models import FormType


# Default policy flags - forgiving
FLAG_UNPARSEABLE_INPUT_DEFAULT = False
MAX_PLAUSIBLE_GAP_MINUTES_DEFAULT: Optional[int] = None

FINAL_CHILL_ENV_PREFIX = "FINAL_CHILL_MAX_F_"


class ValidationPolicy(BaseModel):
    """Snapshot of the policy flags used by one validation pass."""
    flag_unparseable_input: bool = Field(
        FLAG_UNPARSEABLE_INPUT_DEFAULT,
        description="Warn on non-empty temperatures/times that cannot be parsed"
    )
    max_plausible_gap_minutes: Optional[int] = Field(
        MAX_PLAUSIBLE_GAP_MINUTES_DEFAULT,
        ge=1,
        le=1440,
        description="Warn when a time window exceeds this many minutes"
    )
    final_chill_max_f: Dict[FormType, float] = Field(
        default_factory=dict,
        description="Per-variant override of the final-chill ceiling in °F"
    )

    model_config = {"frozen": True}


def _env_flag(name: str, default: bool) -> bool:
    return os.environ.get(name, str(default)).lower() in ("1", "true", "yes")


def _env_minutes(name: str) -> Optional[int]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    if value < 1 or value > 1440:
        return None
    return value


def _final_chill_overrides() -> Dict[FormType, float]:
    overrides: Dict[FormType, float] = {}
    for form_type in FormType:
        raw = os.environ.get(f"{FINAL_CHILL_ENV_PREFIX}{form_type.value}", "").strip()
        if not raw:
            continue
        try:
            overrides[form_type] = float(raw)
        except ValueError:
            continue
    return overrides


def get_validation_policy() -> ValidationPolicy:
    """
    Get current validation policy settings from the environment.

    Unparseable or out-of-range numeric variables fall back to defaults.

    Returns:
        ValidationPolicy with current values

    Example:
        >>> policy = get_validation_policy()
        >>> print(policy.flag_unparseable_input)
        False
    """
    return ValidationPolicy(
        flag_unparseable_input=_env_flag('FLAG_UNPARSEABLE_INPUT', FLAG_UNPARSEABLE_INPUT_DEFAULT),
        max_plausible_gap_minutes=_env_minutes('MAX_PLAUSIBLE_GAP_MINUTES'),
        final_chill_max_f=_final_chill_overrides(),
    )


def resolve_policy(policy: Optional[ValidationPolicy]) -> ValidationPolicy:
    """Return the given policy, or the environment policy when None."""
    return policy if policy is not None else get_validation_policy()
