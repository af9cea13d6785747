"""ProjectPhase model."""
import enum

from sqlalchemy import Column, Date, Integer, String, Text

from buildplan.database import Base
from buildplan.models.base import BaseModel, GUID


class PhaseStatus(str, enum.Enum):
    """Lifecycle status of a project phase"""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DELAYED = "delayed"


class ProjectPhase(Base, BaseModel):
    """
    A named unit of project work over a calendar-day interval.

    Phases are independent records: changing one never touches another.
    Timeline bounds and layout are derived from the current set on demand
    and are never stored.

    Attributes:
        project_id: Owning project
        team_id: Owning team, if the project belongs to one
        created_by: User who created the phase
        phase_name: Display name (non-empty)
        start_date: First day of the phase
        end_date: Last day of the phase (>= start_date)
        status: One of PhaseStatus values
        color: Explicit display color (hex), None to use the status default
        description: Free text
        order_index: Creation order within the project
    """

    __tablename__ = "project_plan_phases"

    project_id = Column(GUID(), nullable=False, index=True)
    team_id = Column(GUID(), nullable=True, index=True)
    created_by = Column(GUID(), nullable=True)

    phase_name = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(
        String(20),
        nullable=False,
        default=PhaseStatus.NOT_STARTED.value,
    )
    color = Column(String(7), nullable=True)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return (
            f"<ProjectPhase(phase_name='{self.phase_name}', "
            f"{self.start_date}..{self.end_date}, status='{self.status}')>"
        )
