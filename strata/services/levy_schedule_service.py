"""Levy schedule management: schedules and their generated periods."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from strata.config import get_settings
from strata.errors import ConflictError, NotFoundError
from strata.models.levy_item import LevyItem
from strata.models.levy_period import LevyPeriod
from strata.models.levy_schedule import LevySchedule
from strata.models.scheme import Scheme
from strata.schemas.levies import LevyScheduleCreate
from strata.services.audit_service import AuditService
from strata.services.context import RequestContext
from strata.services.period_service import generate_periods
from strata.services.result import Outcome

logger = logging.getLogger(__name__)

SCHEDULE_LOCKED_MESSAGE = (
    "Cannot update schedule: levy items have already been generated for one or more periods"
)


class LevyScheduleService:
    """Service for levy schedule database operations.

    A schedule and its periods are editable only until the first levy item
    is raised against any of its periods. After that the schedule can only
    be deactivated.
    """

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    def list_schedules(self, scheme: Scheme) -> list[LevySchedule]:
        """Schedules of a scheme, newest budget year first."""
        return (
            self.db.query(LevySchedule)
            .options(selectinload(LevySchedule.periods))
            .filter(LevySchedule.scheme_id == scheme.id)
            .order_by(LevySchedule.budget_year_start.desc())
            .all()
        )

    def get_schedule(self, scheme: Scheme, schedule_id: int) -> LevySchedule:
        """Fetch a schedule with its periods.

        Raises:
            NotFoundError: If the schedule does not belong to the scheme
        """
        schedule = (
            self.db.query(LevySchedule)
            .options(selectinload(LevySchedule.periods))
            .filter(LevySchedule.id == schedule_id, LevySchedule.scheme_id == scheme.id)
            .first()
        )
        if schedule is None:
            raise NotFoundError("Schedule not found")
        return schedule

    def has_levy_items(self, schedule_id: int) -> bool:
        """True once any period of the schedule has a levy item."""
        count = (
            self.db.query(LevyItem.id)
            .join(LevyPeriod, LevyItem.levy_period_id == LevyPeriod.id)
            .filter(LevyPeriod.levy_schedule_id == schedule_id)
            .count()
        )
        return count > 0

    def _add_periods(self, scheme: Scheme, schedule: LevySchedule) -> None:
        periods = generate_periods(
            schedule.budget_year_start,
            schedule.frequency,
            schedule.periods_per_year,
            scheme.levy_due_day or 1,
            schedule.id,
            fy_start_month=get_settings().financial_year_start_month,
        )
        self.db.add_all(LevyPeriod(**period.as_row()) for period in periods)

    def create_schedule(
        self, ctx: RequestContext, scheme: Scheme, data: LevyScheduleCreate
    ) -> Outcome[LevySchedule]:
        """Create a schedule and generate its billing periods.

        The schedule is committed first. If period generation fails the
        schedule is kept and the failure is returned as a warning.

        Raises:
            ConflictError: If an active schedule already starts on the same date
        """
        duplicate = (
            self.db.query(LevySchedule)
            .filter(
                LevySchedule.scheme_id == scheme.id,
                LevySchedule.budget_year_start == data.budget_year_start,
                LevySchedule.active.is_(True),
            )
            .first()
        )
        if duplicate is not None:
            logger.warning(
                "Duplicate levy schedule for scheme %s starting %s", scheme.id, data.budget_year_start
            )
            raise ConflictError("An active levy schedule already exists for this budget year")

        schedule = LevySchedule(
            scheme_id=scheme.id,
            budget_year_start=data.budget_year_start,
            budget_year_end=data.budget_year_end,
            admin_fund_total=data.admin_fund_total,
            capital_works_fund_total=data.capital_works_fund_total,
            frequency=data.frequency,
            periods_per_year=data.periods_per_year,
            active=True,
            created_by=ctx.user_id,
        )
        self.db.add(schedule)
        self.db.flush()
        AuditService.log(
            self.db,
            "levy_schedule",
            schedule.id,
            "create",
            actor_id=ctx.user_id,
            changes={"frequency": data.frequency.value, "periods_per_year": data.periods_per_year},
        )
        self.db.commit()
        logger.info("Created levy schedule %s for scheme %s", schedule.id, scheme.id)

        try:
            self._add_periods(scheme, schedule)
            self.db.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.db.rollback()
            logger.error("Period generation failed for schedule %s: %s", schedule.id, e)
            return Outcome(schedule, warning=f"Schedule created but period generation failed: {e}")

        self.db.refresh(schedule)
        return Outcome(schedule)

    def update_schedule(
        self, ctx: RequestContext, scheme: Scheme, schedule_id: int, data: LevyScheduleCreate
    ) -> LevySchedule:
        """Replace a schedule's terms and regenerate its periods.

        Raises:
            NotFoundError: If the schedule does not belong to the scheme
            ConflictError: If levy items exist for any of its periods
        """
        schedule = self.get_schedule(scheme, schedule_id)
        if self.has_levy_items(schedule.id):
            logger.warning("Refused update of schedule %s: levy items exist", schedule.id)
            raise ConflictError(SCHEDULE_LOCKED_MESSAGE)

        schedule.budget_year_start = data.budget_year_start
        schedule.budget_year_end = data.budget_year_end
        schedule.admin_fund_total = data.admin_fund_total
        schedule.capital_works_fund_total = data.capital_works_fund_total
        schedule.frequency = data.frequency
        schedule.periods_per_year = data.periods_per_year

        # Periods are derived from the terms above
        schedule.periods.clear()
        self.db.flush()
        self._add_periods(scheme, schedule)

        AuditService.log(self.db, "levy_schedule", schedule.id, "update", actor_id=ctx.user_id)
        self.db.commit()
        self.db.refresh(schedule)
        return schedule

    def delete_schedule(self, ctx: RequestContext, scheme: Scheme, schedule_id: int) -> bool:
        """Delete a schedule, or deactivate it when levy items reference it.

        Returns:
            True if the schedule was hard-deleted, False if it was deactivated

        Raises:
            NotFoundError: If the schedule does not belong to the scheme
        """
        schedule = self.get_schedule(scheme, schedule_id)

        if self.has_levy_items(schedule.id):
            schedule.active = False
            AuditService.log(self.db, "levy_schedule", schedule.id, "deactivate", actor_id=ctx.user_id)
            self.db.commit()
            logger.info("Deactivated levy schedule %s", schedule.id)
            return False

        AuditService.log(self.db, "levy_schedule", schedule.id, "delete", actor_id=ctx.user_id)
        self.db.delete(schedule)
        self.db.commit()
        logger.info("Deleted levy schedule %s", schedule_id)
        return True


__all__ = ["LevyScheduleService", "SCHEDULE_LOCKED_MESSAGE"]
