"""
Models Package

Imports all SQLAlchemy models for application use.
"""

from buildplan.models.base import BaseModel, GUID
from buildplan.models.project_phase import ProjectPhase, PhaseStatus

__all__ = [
    'BaseModel',
    'GUID',
    'ProjectPhase',
    'PhaseStatus',
]
