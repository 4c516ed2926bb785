"""Stage resolution: which intake question comes next."""
from typing import Callable, List, Tuple

from intake_agent.core.models import PatientFields, Stage


# Evaluated top to bottom; the first unfilled field is the next stage.
STAGE_ORDER: Tuple[Tuple[Stage, Callable[[PatientFields], object]], ...] = (
    (Stage.NAME, lambda f: f.name),
    (Stage.PHONE, lambda f: f.phone),
    (Stage.EMAIL, lambda f: f.email),
    (Stage.DATE_OF_BIRTH, lambda f: f.date_of_birth),
    (Stage.REASON, lambda f: f.reason),
    (Stage.INSURANCE_PROVIDER, lambda f: f.insurance.provider),
    (Stage.INSURANCE_ID, lambda f: f.insurance.member_id),
)


def missing_stages(fields: PatientFields) -> List[Stage]:
    """All required stages whose field is still empty, in asking order."""
    return [stage for stage, getter in STAGE_ORDER if not getter(fields)]


def resolve_stage(fields: PatientFields) -> Stage:
    """Return the next required stage, or SCHEDULING once everything is known."""
    for stage, getter in STAGE_ORDER:
        if not getter(fields):
            return stage
    return Stage.SCHEDULING


def is_terminal(stage: Stage) -> bool:
    return stage is Stage.SCHEDULING
