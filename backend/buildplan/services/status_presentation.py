"""Status presentation: default display color and opacity per phase status."""
from typing import Any, Dict, Mapping, Optional

from buildplan.models.project_phase import PhaseStatus


class StatusPresentationResolver:
    """
    Maps a phase status to its default color and opacity.

    An explicit color on the phase always wins over the status default.
    Unknown statuses are presented like not_started.
    """

    STATUS_COLORS: Dict[str, str] = {
        PhaseStatus.COMPLETED.value: "#22c55e",    # green
        PhaseStatus.IN_PROGRESS.value: "#3b82f6",  # blue
        PhaseStatus.DELAYED.value: "#ef4444",      # red
        PhaseStatus.NOT_STARTED.value: "#9ca3af",  # gray
    }

    STATUS_OPACITY: Dict[str, float] = {
        PhaseStatus.COMPLETED.value: 1.0,
        PhaseStatus.IN_PROGRESS.value: 0.8,
        PhaseStatus.DELAYED.value: 0.9,
        PhaseStatus.NOT_STARTED.value: 0.6,
    }

    DEFAULT_STATUS = PhaseStatus.NOT_STARTED.value

    def normalize_status(self, status: Any) -> str:
        """Known status value for display, falling back to not_started."""
        value = status.value if isinstance(status, PhaseStatus) else status
        if isinstance(value, str) and value in self.STATUS_COLORS:
            return value
        return self.DEFAULT_STATUS

    def resolve_color(self, phase: Any) -> str:
        """
        Display color for a phase.

        Args:
            phase: Any object or mapping with ``status`` and optional ``color``

        Returns:
            The phase's own color if set, otherwise the status default
        """
        color = _read(phase, "color")
        if isinstance(color, str) and color:
            return color
        return self.color_for_status(_read(phase, "status"))

    def color_for_status(self, status: Any) -> str:
        return self.STATUS_COLORS[self.normalize_status(status)]

    def resolve_opacity(self, status: Any) -> float:
        return self.STATUS_OPACITY[self.normalize_status(status)]

    def status_label(self, status: Any) -> str:
        """Human label, e.g. "in_progress" -> "In Progress"."""
        return self.normalize_status(status).replace("_", " ").title()


def _read(phase: Any, name: str) -> Optional[Any]:
    if isinstance(phase, Mapping):
        return phase.get(name)
    return getattr(phase, name, None)
