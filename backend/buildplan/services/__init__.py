"""
Services package.

Services contain business logic and data access layer.
The timeline pipeline (validator, bounds resolver, layout engine, status
presentation) is pure and takes no database session; PhasePlanService is
the only service that reads and writes phases.

Services should:
    - Accept database session as parameter
    - Perform database operations
    - Implement business logic
    - Return data or raise exceptions
"""

from buildplan.services.errors import (
    PhasePlanServiceError,
    NotFoundError,
    GenerationFailure,
)
from buildplan.services.status_presentation import StatusPresentationResolver
from buildplan.services.phase_validator import PhaseValidator, ValidPhase
from buildplan.services.timeline_bounds_resolver import (
    TimelineBounds,
    TimelineBoundsResolver,
)
from buildplan.services.timeline_layout_engine import (
    MIN_WIDTH_FRACTION,
    PhaseTimeline,
    PositionedPhase,
    TimelineLayoutEngine,
    build_timeline,
)
from buildplan.services.plan_generation_client import (
    PlanGenerationClient,
    PlanGenerator,
    PlanRequest,
)
from buildplan.services.phase_plan_service import PhasePlanService

__all__ = [
    "PhasePlanServiceError",
    "NotFoundError",
    "GenerationFailure",
    "StatusPresentationResolver",
    "PhaseValidator",
    "ValidPhase",
    "TimelineBounds",
    "TimelineBoundsResolver",
    "MIN_WIDTH_FRACTION",
    "PhaseTimeline",
    "PositionedPhase",
    "TimelineLayoutEngine",
    "build_timeline",
    "PlanGenerationClient",
    "PlanGenerator",
    "PlanRequest",
    "PhasePlanService",
]
