"""Phase validator: filters raw phase records down to layout-ready phases."""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional

from buildplan.services.status_presentation import StatusPresentationResolver
from buildplan.utils.dates import parse_calendar_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidPhase:
    """A phase that passed validation, with normalised name, dates and status."""
    source: Any  # the raw record (mapping or ProjectPhase row)
    phase_name: str
    start_date: date
    end_date: date
    status: str
    color: Optional[str] = None
    description: Optional[str] = None

    @property
    def id(self) -> Optional[Any]:
        return _field(self.source, "id")

    def __str__(self) -> str:
        return f"{self.phase_name}: {self.start_date}..{self.end_date} ({self.status})"


class PhaseValidator:
    """
    Filters raw phases to the ones that can take part in a timeline.

    A raw phase is valid when:
    - phase_name is a non-blank string
    - start_date and end_date parse to calendar dates
    - start_date <= end_date

    Invalid phases are dropped, never raised: the caller keeps the raw
    records and can surface them for correction.
    """

    def __init__(self, presentation: Optional[StatusPresentationResolver] = None):
        self.presentation = presentation or StatusPresentationResolver()

    def validate(self, phases: Iterable[Any]) -> List[ValidPhase]:
        """
        Validate raw phases, preserving input order.

        Args:
            phases: Mappings or objects with phase_name/start_date/end_date
                and optional status/color/description

        Returns:
            The valid phases in input order (empty list if none)
        """
        valid = []
        for index, raw in enumerate(phases or []):
            phase = self.check(raw)
            if phase is None:
                logger.debug("Excluding invalid phase at position %d: %r", index, raw)
                continue
            valid.append(phase)
        return valid

    def check(self, raw: Any) -> Optional[ValidPhase]:
        """Return the ValidPhase for one raw phase, or None if it is invalid."""
        if raw is None:
            return None

        name = _field(raw, "phase_name")
        if not isinstance(name, str) or not name.strip():
            return None

        start = parse_calendar_date(_field(raw, "start_date"))
        end = parse_calendar_date(_field(raw, "end_date"))
        if start is None or end is None or start > end:
            return None

        return ValidPhase(
            source=raw,
            phase_name=name.strip(),
            start_date=start,
            end_date=end,
            status=self.presentation.normalize_status(_field(raw, "status")),
            color=_text_or_none(_field(raw, "color")),
            description=_field(raw, "description"),
        )


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def _text_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None
