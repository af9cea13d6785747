"""Timeline layout engine: turns project phases into a Gantt-style layout."""
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from buildplan.services.phase_validator import PhaseValidator, ValidPhase
from buildplan.services.status_presentation import StatusPresentationResolver
from buildplan.services.timeline_bounds_resolver import (
    TimelineBounds,
    TimelineBoundsResolver,
)
from buildplan.utils.dates import days_between, inclusive_day_count

# Smallest visible bar width on the 0-1 fraction scale
MIN_WIDTH_FRACTION = 0.01


@dataclass(frozen=True)
class PositionedPhase:
    """A phase placed on the timeline, as fractions of the project window."""
    phase: ValidPhase
    start_offset_days: int
    duration_days: int
    left_fraction: float
    width_fraction: float
    color: str
    opacity: float

    def is_current(self, on: date) -> bool:
        """Whether the given day falls inside this phase."""
        return self.phase.start_date <= on <= self.phase.end_date

    def to_dict(self) -> Dict[str, Any]:
        phase_id = self.phase.id
        return {
            "id": str(phase_id) if phase_id is not None else None,
            "phase_name": self.phase.phase_name,
            "start_date": self.phase.start_date.isoformat(),
            "end_date": self.phase.end_date.isoformat(),
            "status": self.phase.status,
            "description": self.phase.description,
            "start_offset_days": self.start_offset_days,
            "duration_days": self.duration_days,
            "left_fraction": self.left_fraction,
            "width_fraction": self.width_fraction,
            "color": self.color,
            "opacity": self.opacity,
        }


@dataclass(frozen=True)
class PhaseTimeline:
    """
    Layout handed to the rendering layer.

    An empty timeline (no valid phases) has ``bounds=None`` and no phases;
    it is a normal state, not an error.
    """
    bounds: Optional[TimelineBounds]
    phases: List[PositionedPhase] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.bounds is None

    def status_counts(self) -> Dict[str, int]:
        """Number of positioned phases per status."""
        return dict(Counter(p.phase.status for p in self.phases))

    def current_phases(self, on: date) -> List[PositionedPhase]:
        return [p for p in self.phases if p.is_current(on)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bounds": self.bounds.to_dict() if self.bounds else None,
            "phases": [p.to_dict() for p in self.phases],
        }


class TimelineLayoutEngine:
    """
    Deterministic layout of validated phases against the project window.

    Rules:
    - Input order is preserved, the engine never sorts
    - Overlapping phases produce overlapping fractions (no lanes)
    - left_fraction is never negative
    - width_fraction is never below MIN_WIDTH_FRACTION
    - No I/O and no state between calls
    """

    def __init__(
        self,
        validator: Optional[PhaseValidator] = None,
        bounds_resolver: Optional[TimelineBoundsResolver] = None,
        presentation: Optional[StatusPresentationResolver] = None,
    ):
        self.presentation = presentation or StatusPresentationResolver()
        self.validator = validator or PhaseValidator(self.presentation)
        self.bounds_resolver = bounds_resolver or TimelineBoundsResolver()

    def layout(
        self,
        valid_phases: Sequence[ValidPhase],
        bounds: TimelineBounds,
    ) -> List[PositionedPhase]:
        """
        Position each phase relative to the bounds.

        Args:
            valid_phases: Output of PhaseValidator.validate()
            bounds: Output of TimelineBoundsResolver.resolve_bounds()

        Returns:
            One PositionedPhase per input phase, in input order
        """
        total_days = bounds.total_days
        positioned = []

        for phase in valid_phases:
            start_offset_days = days_between(bounds.project_start, phase.start_date)
            duration_days = max(1, inclusive_day_count(phase.start_date, phase.end_date))

            positioned.append(PositionedPhase(
                phase=phase,
                start_offset_days=start_offset_days,
                duration_days=duration_days,
                left_fraction=max(0.0, start_offset_days / total_days),
                width_fraction=max(MIN_WIDTH_FRACTION, duration_days / total_days),
                color=self.presentation.resolve_color(phase),
                opacity=self.presentation.resolve_opacity(phase.status),
            ))

        return positioned

    def build(
        self,
        raw_phases: Iterable[Any],
        sort_by_start: bool = False,
    ) -> PhaseTimeline:
        """
        Run the full pipeline: validate, resolve bounds, lay out.

        Args:
            raw_phases: Raw phase records (mappings or ProjectPhase rows)
            sort_by_start: Order phases chronologically (stable on ties)
                instead of keeping input order

        Returns:
            PhaseTimeline, empty when no phase is valid
        """
        valid_phases = self.validator.validate(raw_phases)
        if not valid_phases:
            return PhaseTimeline(bounds=None, phases=[])

        if sort_by_start:
            valid_phases = sorted(valid_phases, key=lambda p: (p.start_date, p.end_date))

        bounds = self.bounds_resolver.resolve_bounds(valid_phases)
        return PhaseTimeline(bounds=bounds, phases=self.layout(valid_phases, bounds))


def build_timeline(raw_phases: Iterable[Any], sort_by_start: bool = False) -> PhaseTimeline:
    """Module-level shortcut for TimelineLayoutEngine().build()."""
    return TimelineLayoutEngine().build(raw_phases, sort_by_start=sort_by_start)
