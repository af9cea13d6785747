"""Timeline bounds: the overall project date window of a phase set."""
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Sequence

from buildplan.services.phase_validator import ValidPhase
from buildplan.utils.dates import inclusive_day_count, week_ticks


@dataclass(frozen=True)
class TimelineBounds:
    """Project date window. total_days counts both ends and is at least 1."""
    project_start: date
    project_end: date
    total_days: int

    def week_ticks(self) -> List[date]:
        """Sundays covering the window, for axis labels."""
        return week_ticks(self.project_start, self.project_end)

    def to_dict(self) -> Dict[str, object]:
        return {
            "project_start": self.project_start.isoformat(),
            "project_end": self.project_end.isoformat(),
            "total_days": self.total_days,
        }


class TimelineBoundsResolver:
    """Derives the project window from validated phases."""

    def resolve_bounds(self, valid_phases: Sequence[ValidPhase]) -> TimelineBounds:
        """
        Compute the project window.

        Args:
            valid_phases: Phases that passed PhaseValidator (at least one)

        Returns:
            TimelineBounds spanning the earliest start to the latest end

        Raises:
            ValueError: If no phases are given
        """
        if not valid_phases:
            raise ValueError("Cannot resolve timeline bounds without valid phases")

        project_start = min(p.start_date for p in valid_phases)
        project_end = max(p.end_date for p in valid_phases)

        return TimelineBounds(
            project_start=project_start,
            project_end=project_end,
            total_days=max(1, inclusive_day_count(project_start, project_end)),
        )
