"""Phase plan service: CRUD and AI plan generation for project phases."""
import colorsys
import logging
import math
import uuid
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from buildplan.models.base import utcnow
from buildplan.models.project_phase import ProjectPhase
from buildplan.services.errors import (
    GenerationFailure,
    NotFoundError,
    PhasePlanServiceError,
)
from buildplan.services.plan_generation_client import PlanGenerator, PlanRequest
from buildplan.services.timeline_layout_engine import PhaseTimeline, TimelineLayoutEngine
from buildplan.utils.dates import parse_calendar_date
from buildplan.utils.invariants import ValidationError, validate_phase_fields

logger = logging.getLogger(__name__)

StatusListener = Callable[[ProjectPhase, str, str], None]

__all__ = [
    "PhasePlanService",
    "PhasePlanServiceError",
    "NotFoundError",
    "GenerationFailure",
    "ValidationError",
]


class PhasePlanService:
    """
    Service for creating, editing and generating project phases.

    Capabilities:
    - Create / update / delete individual phases
    - List a project's phases in creation order
    - Build the project's timeline layout from the stored phases
    - Bulk-create phases from a generated plan (all or nothing)

    Rules:
    - Every write is validated against the phase invariants first;
      an invalid write changes nothing
    - Concurrent updates are last-write-wins on updated_at
    - Deleting a missing phase is a no-op
    """

    MUTABLE_FIELDS = frozenset({
        "phase_name",
        "start_date",
        "end_date",
        "status",
        "color",
        "description",
    })
    CREATE_FIELDS = MUTABLE_FIELDS | {"team_id", "created_by"}

    # A generated phase starts this many days after the previous one ends
    GENERATED_PHASE_GAP_DAYS = 2
    GENERATED_HUE_STEP = 60

    def __init__(
        self,
        db: Session,
        plan_generator: Optional[PlanGenerator] = None,
        status_listener: Optional[StatusListener] = None,
        layout_engine: Optional[TimelineLayoutEngine] = None,
    ):
        """
        Initialize phase plan service.

        Args:
            db: Database session
            plan_generator: Collaborator used by generate_from_plan()
            status_listener: Called with (phase, old_status, new_status)
                after an update changes a phase's status
            layout_engine: Engine used by build_project_timeline()
        """
        self.db = db
        self.plan_generator = plan_generator
        self.status_listener = status_listener
        self.layout_engine = layout_engine or TimelineLayoutEngine()

    def create(self, project_id: Any, fields: Dict[str, Any]) -> ProjectPhase:
        """
        Create a phase in a project.

        Args:
            project_id: Owning project ID
            fields: phase_name, start_date, end_date and optional status,
                color, description, team_id, created_by

        Returns:
            The persisted ProjectPhase

        Raises:
            ValidationError: If the fields violate a phase invariant
        """
        project_uuid = _as_uuid(project_id, "project_id")
        self._reject_unknown_fields(fields, self.CREATE_FIELDS)
        values = validate_phase_fields(fields)

        now = utcnow()
        phase = ProjectPhase(
            project_id=project_uuid,
            team_id=_optional_uuid(fields.get("team_id"), "team_id"),
            created_by=_optional_uuid(fields.get("created_by"), "created_by"),
            order_index=self._next_order_index(project_uuid),
            created_at=now,
            updated_at=now,
            **values,
        )

        self.db.add(phase)
        self._commit()
        self.db.refresh(phase)

        logger.info(
            "Created phase %s '%s' in project %s",
            phase.id, phase.phase_name, project_uuid,
        )
        return phase

    def update(self, phase_id: Any, partial_fields: Dict[str, Any]) -> ProjectPhase:
        """
        Apply a partial update to a phase.

        The merged result is validated before anything is written.

        Args:
            phase_id: Phase to update
            partial_fields: Subset of phase_name, start_date, end_date,
                status, color, description

        Returns:
            The updated ProjectPhase

        Raises:
            NotFoundError: If the phase does not exist
            ValidationError: If the merged phase would violate an invariant
        """
        self._reject_unknown_fields(partial_fields, self.MUTABLE_FIELDS)
        phase = self.get(phase_id)

        merged = {name: getattr(phase, name) for name in self.MUTABLE_FIELDS}
        merged.update(partial_fields)
        values = validate_phase_fields(merged)

        old_status = phase.status
        for name, value in values.items():
            setattr(phase, name, value)
        phase.updated_at = utcnow()

        self._commit()
        self.db.refresh(phase)
        logger.info("Updated phase %s (%s)", phase.id, ", ".join(sorted(partial_fields)))

        if old_status != phase.status:
            self._notify_status_change(phase, old_status, phase.status)

        return phase

    def delete(self, phase_id: Any) -> None:
        """
        Delete a phase. Deleting a phase that does not exist succeeds.

        Args:
            phase_id: Phase to delete
        """
        phase = self._find(phase_id)
        if phase is None:
            logger.debug("Phase %s already absent, nothing to delete", phase_id)
            return

        self.db.delete(phase)
        self._commit()
        logger.info("Deleted phase %s", phase_id)

    def get(self, phase_id: Any) -> ProjectPhase:
        """
        Fetch a phase by ID.

        Raises:
            NotFoundError: If the phase does not exist
        """
        phase = self._find(phase_id)
        if phase is None:
            raise NotFoundError(f"Phase with ID {phase_id} not found")
        return phase

    def list_by_project(self, project_id: Any) -> List[ProjectPhase]:
        """
        All phases of a project in creation order.

        Args:
            project_id: Project ID

        Returns:
            List of ProjectPhase objects (empty for a project without phases)
        """
        project_uuid = _as_uuid(project_id, "project_id")
        return self.db.query(ProjectPhase).filter(
            ProjectPhase.project_id == project_uuid
        ).order_by(
            ProjectPhase.order_index.asc(),
            ProjectPhase.created_at.asc(),
        ).all()

    def build_project_timeline(
        self,
        project_id: Any,
        sort_by_start: bool = False,
    ) -> PhaseTimeline:
        """
        Lay out a project's current phases.

        Args:
            project_id: Project ID
            sort_by_start: Order chronologically instead of creation order

        Returns:
            PhaseTimeline (empty when the project has no valid phases)
        """
        return self.layout_engine.build(
            self.list_by_project(project_id),
            sort_by_start=sort_by_start,
        )

    def generate_from_plan(
        self,
        project_id: Any,
        project_name: str,
        project_description: Optional[str] = None,
        project_type: Optional[str] = None,
        start_date: Optional[date] = None,
    ) -> List[ProjectPhase]:
        """
        Create a project's phases from a generated plan.

        Steps:
        1. Request the plan from the plan generator
        2. Schedule phases that only carry duration_days
        3. Validate every phase
        4. Insert all phases in one transaction

        Any failure leaves the project's phases untouched.

        Args:
            project_id: Project ID
            project_name: Project name sent to the generator
            project_description: Optional description sent to the generator
            project_type: Optional project type sent to the generator
            start_date: First day of the first duration-only phase
                (defaults to today)

        Returns:
            The created phases in plan order

        Raises:
            ValidationError: If project_id or project_name is invalid
            GenerationFailure: If the plan could not be generated or applied
        """
        project_uuid = _as_uuid(project_id, "project_id")
        if not isinstance(project_name, str) or not project_name.strip():
            raise ValidationError(
                "project_name_required",
                "Project name is required to generate a plan",
            )
        if self.plan_generator is None:
            raise GenerationFailure("No plan generator configured")

        request = PlanRequest(
            project_id=str(project_uuid),
            project_name=project_name.strip(),
            project_description=project_description,
            project_type=project_type,
        )

        try:
            raw_phases = self.plan_generator.generate(request)
        except GenerationFailure:
            raise
        except Exception as e:
            raise GenerationFailure(
                f"Plan generation failed: {e}",
                details={"error_type": type(e).__name__},
            ) from e

        if not raw_phases:
            raise GenerationFailure("Plan generation returned no phases")

        field_sets = self._schedule_generated_phases(
            raw_phases,
            start_date or date.today(),
        )

        validated = []
        for index, fields in enumerate(field_sets):
            try:
                validated.append(validate_phase_fields(fields))
            except ValidationError as e:
                raise GenerationFailure(
                    f"Generated phase {index} is invalid: {e}",
                    details={"index": index, "invariant": e.invariant_name},
                ) from e

        first_index = self._next_order_index(project_uuid)
        now = utcnow()
        phases = [
            ProjectPhase(
                project_id=project_uuid,
                order_index=first_index + offset,
                created_at=now,
                updated_at=now,
                **values,
            )
            for offset, values in enumerate(validated)
        ]

        try:
            self.db.add_all(phases)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise GenerationFailure(f"Failed to save generated plan: {e}") from e

        for phase in phases:
            self.db.refresh(phase)

        logger.info(
            "Generated %d phases for project %s (%s)",
            len(phases), project_uuid, request.project_name,
        )
        return phases

    # Private helper methods

    def _find(self, phase_id: Any) -> Optional[ProjectPhase]:
        try:
            phase_uuid = _as_uuid(phase_id, "phase_id")
        except ValidationError:
            return None
        return self.db.query(ProjectPhase).filter(
            ProjectPhase.id == phase_uuid
        ).first()

    def _next_order_index(self, project_id: uuid.UUID) -> int:
        current_max = self.db.query(func.max(ProjectPhase.order_index)).filter(
            ProjectPhase.project_id == project_id
        ).scalar()
        return 0 if current_max is None else current_max + 1

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _reject_unknown_fields(self, fields: Dict[str, Any], allowed: frozenset) -> None:
        unknown = set(fields) - allowed
        if unknown:
            raise ValidationError(
                "unknown_fields",
                f"Unsupported phase fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)},
            )

    def _notify_status_change(self, phase: ProjectPhase, old_status: str, new_status: str) -> None:
        logger.info(
            "Phase %s status changed: %s -> %s", phase.id, old_status, new_status
        )
        if self.status_listener is None:
            return
        try:
            self.status_listener(phase, old_status, new_status)
        except Exception:
            # The update is already committed; a failed notification does not undo it
            logger.warning(
                "Status change notification failed for phase %s", phase.id,
                exc_info=True,
            )

    def _schedule_generated_phases(
        self,
        raw_phases: List[Dict[str, Any]],
        start_date: date,
    ) -> List[Dict[str, Any]]:
        """
        Turn generated phases into dated field-sets.

        Phases with explicit start/end dates keep them. Phases with only
        duration_days are placed back to back from start_date, each one
        starting GENERATED_PHASE_GAP_DAYS after the previous phase ends.
        Phases without a color get a distinct generated one.

        Raises:
            GenerationFailure: If a phase has neither dates nor a usable duration,
                or its schedule falls outside the supported date range
        """
        field_sets = []
        previous_end = None

        for index, raw in enumerate(raw_phases):
            if not isinstance(raw, dict):
                raise GenerationFailure(
                    f"Generated phase {index} is not an object",
                    details={"index": index},
                )

            fields = {
                name: raw.get(name)
                for name in ("phase_name", "start_date", "end_date", "color", "description")
            }
            # A generated phase without a status starts as not_started
            if raw.get("status") is not None:
                fields["status"] = raw["status"]

            if fields["start_date"] is None and fields["end_date"] is None:
                duration_days = _positive_int(raw.get("duration_days"))
                if duration_days is None:
                    raise GenerationFailure(
                        f"Generated phase {index} has no dates and no valid duration_days",
                        details={"index": index, "duration_days": raw.get("duration_days")},
                    )
                try:
                    if previous_end is None:
                        phase_start = start_date
                    else:
                        phase_start = previous_end + timedelta(days=self.GENERATED_PHASE_GAP_DAYS)
                    phase_end = phase_start + timedelta(days=duration_days - 1)
                except OverflowError as e:
                    raise GenerationFailure(
                        f"Generated phase {index} falls outside the supported date range",
                        details={"index": index, "duration_days": duration_days},
                    ) from e
                fields["start_date"] = phase_start
                fields["end_date"] = phase_end
                previous_end = phase_end
            else:
                explicit_end = parse_calendar_date(fields["end_date"])
                if explicit_end is not None:
                    previous_end = explicit_end

            if not fields["color"]:
                fields["color"] = _generated_color(index, self.GENERATED_HUE_STEP)

            field_sets.append(fields)

        return field_sets


def _as_uuid(value: Any, field_name: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(
            f"{field_name}_invalid",
            f"{field_name} is not a valid UUID: {value!r}",
            details={field_name: str(value)},
        ) from None


def _optional_uuid(value: Any, field_name: str) -> Optional[uuid.UUID]:
    if value is None:
        return None
    return _as_uuid(value, field_name)


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    if value != int(value) or value < 1:
        return None
    return int(value)


def _generated_color(index: int, hue_step: int) -> str:
    """hsl(index * hue_step, 70%, 50%) as a hex color."""
    hue = ((index * hue_step) % 360) / 360.0
    red, green, blue = colorsys.hls_to_rgb(hue, 0.5, 0.7)
    return "#{:02x}{:02x}{:02x}".format(
        round(red * 255), round(green * 255), round(blue * 255)
    )
