"""
Phase invariants and validation utilities.

Enforces the constraints every persisted phase must satisfy:
1. Phase name is non-empty
2. Start and end dates are valid calendar dates
3. start_date <= end_date
4. Status is a known phase status
5. Color, when present, is a hex color

Fail fast with explicit errors.
"""
import re
from typing import Any, Dict, Optional, Tuple

from buildplan.models.project_phase import PhaseStatus
from buildplan.utils.dates import parse_calendar_date

MAX_PHASE_NAME_LENGTH = 255

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


class InvariantViolationError(Exception):
    """Base exception for invariant violations."""

    def __init__(self, invariant_name: str, message: str, details: dict = None):
        self.invariant_name = invariant_name
        self.details = details or {}
        super().__init__(f"[INVARIANT VIOLATION: {invariant_name}] {message}")


class ValidationError(InvariantViolationError):
    """Raised when a phase create/update would violate a phase invariant."""
    pass


def check_phase_name(phase_name: Any) -> str:
    """
    Invariant: phase name is a non-empty string.

    Returns:
        The name with surrounding whitespace removed

    Raises:
        ValidationError: If the name is missing, blank or too long
    """
    if not isinstance(phase_name, str) or not phase_name.strip():
        raise ValidationError(
            "phase_name_required",
            "Phase name must be a non-empty string",
            details={"phase_name": phase_name},
        )
    phase_name = phase_name.strip()
    if len(phase_name) > MAX_PHASE_NAME_LENGTH:
        raise ValidationError(
            "phase_name_too_long",
            f"Phase name exceeds {MAX_PHASE_NAME_LENGTH} characters",
            details={"length": len(phase_name)},
        )
    return phase_name


def check_phase_dates(start_date: Any, end_date: Any) -> Tuple:
    """
    Invariant: both dates parse and start_date <= end_date.

    Returns:
        (start_date, end_date) as calendar dates

    Raises:
        ValidationError: If a date does not parse or the range is reversed
    """
    start = parse_calendar_date(start_date)
    end = parse_calendar_date(end_date)

    if start is None:
        raise ValidationError(
            "start_date_invalid",
            f"start_date is not a valid calendar date: {start_date!r}",
            details={"start_date": str(start_date)},
        )
    if end is None:
        raise ValidationError(
            "end_date_invalid",
            f"end_date is not a valid calendar date: {end_date!r}",
            details={"end_date": str(end_date)},
        )
    if start > end:
        raise ValidationError(
            "start_after_end",
            f"start_date {start.isoformat()} is after end_date {end.isoformat()}",
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
    return start, end


def check_phase_status(status: Any) -> str:
    """
    Invariant: status is one of the known phase statuses.

    Returns:
        The status as its string value

    Raises:
        ValidationError: If the status is unknown
    """
    try:
        return PhaseStatus(status).value
    except ValueError:
        raise ValidationError(
            "status_unknown",
            f"Unknown phase status: {status!r}",
            details={
                "status": str(status),
                "allowed": [s.value for s in PhaseStatus],
            },
        ) from None


def check_phase_color(color: Any) -> Optional[str]:
    """
    Invariant: color is absent or a #RGB / #RRGGBB hex string.

    Returns:
        The color in lower case, or None

    Raises:
        ValidationError: If the color is not a hex color
    """
    if color is None or color == "":
        return None
    if not isinstance(color, str) or not HEX_COLOR_PATTERN.match(color):
        raise ValidationError(
            "color_not_hex",
            f"Color must be a hex string like #3b82f6: {color!r}",
            details={"color": str(color)},
        )
    return color.lower()


def validate_phase_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check a complete phase field-set against every phase invariant.

    Args:
        fields: phase_name, start_date, end_date and optional status,
            color, description. A missing status defaults to not_started;
            a status that is present must be a known one (None included).

    Returns:
        Normalised field dict ready to be written to a ProjectPhase

    Raises:
        ValidationError: On the first violated invariant
    """
    phase_name = check_phase_name(fields.get("phase_name"))
    start, end = check_phase_dates(fields.get("start_date"), fields.get("end_date"))
    description = fields.get("description")
    if description is not None and not isinstance(description, str):
        raise ValidationError(
            "description_not_text",
            "Description must be text",
            details={"description_type": type(description).__name__},
        )

    return {
        "phase_name": phase_name,
        "start_date": start,
        "end_date": end,
        "status": check_phase_status(
            fields["status"] if "status" in fields else PhaseStatus.NOT_STARTED.value
        ),
        "color": check_phase_color(fields.get("color")),
        "description": description,
    }
