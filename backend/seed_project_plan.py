"""
Demo Seed Data Script

Creates a demo construction project plan and prints its timeline layout:
- Planning & design, permits and site preparation (completed)
- Foundation work (in progress, overlapping the permits tail)
- Structural work (delayed)
- Finishing (not started, single-day handover at the end)
"""

import uuid
from datetime import date, timedelta

from sqlalchemy.orm import Session

from buildplan.database import SessionLocal, engine, Base
from buildplan.logging_config import setup_logging
from buildplan.models import ProjectPhase, PhaseStatus
from buildplan.services import PhasePlanService, PhaseTimeline

DEMO_PROJECT_ID = uuid.UUID('22222222-0000-0000-0000-000000000001')


def clear_demo_project(db: Session):
    """Remove the demo project's phases (for demo purposes only)"""
    print("Clearing existing demo phases...")
    db.query(ProjectPhase).filter(
        ProjectPhase.project_id == DEMO_PROJECT_ID
    ).delete()
    db.commit()
    print("✓ Demo phases cleared")


def create_demo_phases(service: PhasePlanService, start: date):
    """Create the demo phases, relative to the given start date"""
    print("\nCreating demo phases...")

    plan = [
        ("Planning & Design", 0, 13, PhaseStatus.COMPLETED, "Design review and material ordering"),
        ("Permits & Approvals", 14, 34, PhaseStatus.COMPLETED, "Building control and planning sign-off"),
        ("Site Preparation", 30, 36, PhaseStatus.COMPLETED, None),
        ("Foundation Work", 37, 50, PhaseStatus.IN_PROGRESS, "Excavation, pour and curing"),
        ("Structural Work", 51, 80, PhaseStatus.DELAYED, "Frame, roof and envelope"),
        ("Finishing", 81, 100, PhaseStatus.NOT_STARTED, None),
        ("Handover", 101, 101, PhaseStatus.NOT_STARTED, "Final inspection and keys"),
    ]

    for name, first_day, last_day, status, description in plan:
        service.create(DEMO_PROJECT_ID, {
            "phase_name": name,
            "start_date": start + timedelta(days=first_day),
            "end_date": start + timedelta(days=last_day),
            "status": status,
            "description": description,
        })
    print(f"✓ {len(plan)} phases created")


def print_timeline(timeline: PhaseTimeline):
    """Print a text Gantt chart of the timeline"""
    if timeline.is_empty:
        print("No timeline phases")
        return

    bounds = timeline.bounds
    print(
        f"\nTimeline: {bounds.project_start:%b %d, %Y} - {bounds.project_end:%b %d, %Y}"
        f" ({bounds.total_days} days, {len(bounds.week_ticks())} weeks)"
    )

    width = 60
    for positioned in timeline.phases:
        left = int(round(positioned.left_fraction * width))
        bar = max(1, int(round(positioned.width_fraction * width)))
        print(
            f"  {positioned.phase.phase_name[:20]:<20} "
            f"|{' ' * left}{'#' * bar}{' ' * max(0, width - left - bar)}| "
            f"{positioned.duration_days}d {positioned.phase.status}"
        )

    counts = timeline.status_counts()
    print(
        f"\nActive phases: {counts.get(PhaseStatus.IN_PROGRESS.value, 0)}"
        f"  Completed: {counts.get(PhaseStatus.COMPLETED.value, 0)}"
    )


def main():
    """Run the demo project seeding"""
    setup_logging()

    print("="*60)
    print("Project Plan - Demo Data Seeder")
    print("="*60)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        clear_demo_project(db)

        service = PhasePlanService(db)
        create_demo_phases(service, date.today() - timedelta(days=40))
        print_timeline(service.build_project_timeline(DEMO_PROJECT_ID))

        print("\n" + "="*60)
        print("✓ Demo data successfully seeded!")
        print(f"  Project ID: {DEMO_PROJECT_ID}")
        print("="*60)

    except Exception as e:
        print(f"\n❌ Error seeding data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == '__main__':
    main()
