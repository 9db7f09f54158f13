"""
HACCP stage rule table.

One immutable rule per process stage, per form variant. Every consumer
(cell validation, highlighting, corrective-action text, the API) reads the
thresholds from here, so no caller carries its own copy of a limit.

Cooking & cooling limits:
- CCP 1: 166°F or greater
- CCP 2: 127°F or greater
- 80°F or below within 105 minutes of the CCP 2 reading
- 54°F or below within 4.75 hours of the 80°F reading (CCP 2 if absent)
- Final chill: 39°F or below (40°F on the piroshki and bagel dog forms)

Example usage:
    from paperform.rules import get_stage_rule
    from paperform.models import FormType

    rule = get_stage_rule("finalChill", FormType.BAGEL_DOG_COOKING_COOLING)
    print(rule.max_f)  # 40.0
"""

from types import MappingProxyType
from typing import Dict, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, model_validator

from paperform.errors import UnknownStageError
from paperform.models import FormRow, FormType, Stage
from paperform.parsing import format_number
from paperform.policy import ValidationPolicy


class StageRule(BaseModel):
    """Temperature bound and optional time window for one stage."""
    stage: Stage
    min_f: Optional[float] = Field(None, description="Reading must be at or above this (°F)")
    max_f: Optional[float] = Field(None, description="Reading must be at or below this (°F)")
    time_limit: Optional[float] = Field(None, gt=0, description="Time window in time_unit")
    time_unit: Optional[Literal["minutes", "hours"]] = None
    description: str = ""

    model_config = {"frozen": True}

    @model_validator(mode='after')
    def validate_rule(self):
        """A stage is either a floor or a ceiling, and a time limit needs a unit."""
        if self.min_f is not None and self.max_f is not None:
            raise ValueError(f"Stage {self.stage.value} cannot have both a minimum and a maximum")
        if (self.time_limit is None) != (self.time_unit is None):
            raise ValueError("time_limit and time_unit must be given together")
        return self

    @property
    def time_limit_minutes(self) -> Optional[float]:
        """Time window converted to minutes."""
        if self.time_limit is None:
            return None
        if self.time_unit == "hours":
            return self.time_limit * 60
        return self.time_limit


STAGE_LABELS: Mapping[Stage, str] = MappingProxyType({
    Stage.CCP1: "CCP1",
    Stage.CCP2: "CCP2",
    Stage.COOLING_TO_80: "80°F Cooling",
    Stage.COOLING_TO_54: "54°F Cooling",
    Stage.FINAL_CHILL: "Final Chill",
})

# Regulatory constants; the final-chill ceiling differs per form variant
FINAL_CHILL_MAX_F: Mapping[FormType, float] = MappingProxyType({
    FormType.COOKING_AND_COOLING: 39.0,
    FormType.PIROSHKI_CALZONE_EMPANADA: 40.0,
    FormType.BAGEL_DOG_COOKING_COOLING: 40.0,
})


def _final_chill_rule(max_f: float) -> StageRule:
    return StageRule(
        stage=Stage.FINAL_CHILL,
        max_f=max_f,
        description=f"Chill continuously to {format_number(max_f)}°F or below",
    )


_SHARED_RULES = (
    StageRule(
        stage=Stage.CCP1,
        min_f=166.0,
        description="Temperature must reach 166°F or greater (CCP 1)",
    ),
    StageRule(
        stage=Stage.CCP2,
        min_f=127.0,
        description="127°F or greater (CCP 2)",
    ),
    StageRule(
        stage=Stage.COOLING_TO_80,
        max_f=80.0,
        time_limit=105,
        time_unit="minutes",
        description="80°F or below within 105 minutes (CCP 2)",
    ),
    StageRule(
        stage=Stage.COOLING_TO_54,
        max_f=54.0,
        time_limit=4.75,
        time_unit="hours",
        description="54°F or below within 4.75 hours",
    ),
)


def _build_table(final_chill_max_f: float) -> Mapping[Stage, StageRule]:
    rules: Dict[Stage, StageRule] = {rule.stage: rule for rule in _SHARED_RULES}
    rules[Stage.FINAL_CHILL] = _final_chill_rule(final_chill_max_f)
    return MappingProxyType(rules)


STAGE_RULES: Mapping[FormType, Mapping[Stage, StageRule]] = MappingProxyType({
    form_type: _build_table(max_f) for form_type, max_f in FINAL_CHILL_MAX_F.items()
})


def get_stage_rules(
    form_type: FormType = FormType.COOKING_AND_COOLING,
    policy: Optional[ValidationPolicy] = None
) -> Mapping[Stage, StageRule]:
    """
    Get the rule table for a form variant.

    Args:
        form_type: Form variant
        policy: Policy carrying optional final-chill overrides

    Returns:
        Read-only mapping of stage to rule
    """
    form_type = FormType(form_type)
    table = STAGE_RULES[form_type]

    if policy is not None and form_type in policy.final_chill_max_f:
        override = policy.final_chill_max_f[form_type]
        if override != table[Stage.FINAL_CHILL].max_f:
            return _build_table(override)

    return table


def get_stage_rule(
    stage: Union[Stage, str],
    form_type: FormType = FormType.COOKING_AND_COOLING,
    policy: Optional[ValidationPolicy] = None
) -> StageRule:
    """
    Look up the rule for one stage.

    Raises:
        UnknownStageError: If the stage name is not a known stage
    """
    try:
        stage = Stage(stage)
    except ValueError:
        raise UnknownStageError(str(stage), [s.value for s in Stage]) from None
    return get_stage_rules(form_type, policy)[stage]


def reference_time(row: FormRow, stage: Stage) -> Optional[str]:
    """
    Time a stage's time window is measured from.

    80°F cooling runs from the CCP 2 reading; 54°F cooling runs from the
    80°F reading when one was recorded, otherwise from CCP 2. Other stages
    have no window.
    """
    if stage == Stage.COOLING_TO_80:
        return row.ccp2.time
    if stage == Stage.COOLING_TO_54:
        return row.cooling_to_80.time or row.ccp2.time
    return None
