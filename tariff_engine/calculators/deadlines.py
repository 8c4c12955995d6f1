"""
Blackout & Deadline Calculator

Business-day arithmetic for taxation scheduling. Skips weekends, gazetted
public holidays and the annual 16 December - 15 January court blackout,
except for matters whose deadlines cannot be extended.

Pure date arithmetic: no I/O, no clock reads.
"""

from datetime import date, timedelta
from typing import Iterable

from ..models import BlackoutException, BlackoutPeriod, DeadlineResult, MatterContext, TaxationSchedule

BLACKOUT_START = (12, 16)
BLACKOUT_END = (1, 15)

PUBLIC_HOLIDAYS = {
    (1, 1): "New Year's Day",
    (3, 21): "Human Rights Day",
    (4, 27): "Freedom Day",
    (5, 1): "Workers' Day",
    (6, 16): "Youth Day",
    (8, 9): "National Women's Day",
    (9, 24): "Heritage Day",
    (12, 16): "Day of Reconciliation",
    (12, 25): "Christmas Day",
    (12, 26): "Day of Goodwill",
}

BLACKOUT_EXCEPTIONS = (
    BlackoutException(
        kind="urgent-application",
        description="Urgent applications requiring immediate relief",
        criteria=("Imminent harm or prejudice", "Constitutional rights at stake", "Time-sensitive commercial matters"),
        requires_justification=True,
    ),
    BlackoutException(
        kind="interim-relief",
        description="Interim relief applications",
        criteria=("Preservation of status quo", "Prevention of irreparable harm", "Interim interdicts"),
        requires_justification=True,
    ),
    BlackoutException(
        kind="criminal-matter",
        description="Criminal matters with custody implications",
        criteria=("Bail applications", "Custody time limits", "Constitutional deadlines"),
        requires_justification=False,
    ),
    BlackoutException(
        kind="appeal-deadline",
        description="Appeal deadlines that cannot be extended",
        criteria=("Statutory appeal periods", "Constitutional Court deadlines", "SCA filing deadlines"),
        requires_justification=False,
    ),
    BlackoutException(
        kind="court-order",
        description="Compliance with existing court orders",
        criteria=("Court-ordered deadlines", "Contempt proceedings", "Mandated timelines"),
        requires_justification=False,
    ),
)

INSPECTION_PERIOD_DAYS = 10
OBJECTION_PERIOD_DAYS = 10
SET_DOWN_DELAY_DAYS = 5
BLACKOUT_WARNING_DAYS = 5


class DeadlineCalculator:
    """Computes blackout-aware deadlines."""

    def __init__(self, extra_holidays: Iterable[date] = ()):
        # Gazetted once-off holidays (e.g. election days)
        self.extra_holidays = frozenset(extra_holidays)

    # -------------------------------------------------------------------------
    # Calendar
    # -------------------------------------------------------------------------

    def blackout_period(self, year: int) -> BlackoutPeriod:
        return BlackoutPeriod(
            year=year,
            start_date=date(year, *BLACKOUT_START),
            end_date=date(year + 1, *BLACKOUT_END),
            exceptions=BLACKOUT_EXCEPTIONS,
        )

    def blackout_for(self, on_date: date) -> BlackoutPeriod | None:
        """The blackout window containing `on_date`, if any.

        January dates belong to the window that started the previous December.
        """
        period = self.blackout_period(on_date.year)
        if period.contains(on_date):
            return period
        if on_date.month == 1:
            previous = self.blackout_period(on_date.year - 1)
            if previous.contains(on_date):
                return previous
        return None

    def is_in_blackout(self, on_date: date) -> bool:
        return self.blackout_for(on_date) is not None

    def is_public_holiday(self, on_date: date) -> bool:
        return (on_date.month, on_date.day) in PUBLIC_HOLIDAYS or on_date in self.extra_holidays

    def is_business_day(self, on_date: date) -> bool:
        return on_date.weekday() < 5 and not self.is_public_holiday(on_date)

    def next_business_day(self, on_date: date) -> date:
        """First business day strictly after `on_date`."""
        return self.adjust_to_business_day(on_date + timedelta(days=1))

    def adjust_to_business_day(self, on_date: date, forward: bool = True) -> date:
        """`on_date` itself if it is a business day, else the nearest one in the given direction."""
        step = timedelta(days=1 if forward else -1)
        while not self.is_business_day(on_date):
            on_date += step
        return on_date

    def add_business_days(self, on_date: date, days: int) -> date:
        result = on_date
        added = 0
        while added < days:
            result += timedelta(days=1)
            if self.is_business_day(result):
                added += 1
        return result

    # -------------------------------------------------------------------------
    # Deadlines
    # -------------------------------------------------------------------------

    def adjust_for_blackout(self, on_date: date, forward: bool = True) -> DeadlineResult:
        """Move a date out of the blackout onto the nearest business day outside it."""
        period = self.blackout_for(on_date)
        if period is None:
            return DeadlineResult(
                original_date=on_date,
                adjusted_date=on_date,
                was_adjusted=False,
                reason="Date not in blackout period",
            )

        if forward:
            adjusted = self.adjust_to_business_day(period.end_date + timedelta(days=1))
            skipped = (adjusted - on_date).days
        else:
            adjusted = self.adjust_to_business_day(period.start_date - timedelta(days=1), forward=False)
            skipped = (on_date - adjusted).days

        return DeadlineResult(
            original_date=on_date,
            adjusted_date=adjusted,
            was_adjusted=True,
            reason=f"Date adjusted to skip {period.description.lower()} "
                   f"({period.start_date.isoformat()} to {period.end_date.isoformat()})",
            days_skipped=skipped,
            blackout_period=period,
        )

    def calculate_deadline(self, base_date: date, days_to_add: int, matter: MatterContext | None = None) -> DeadlineResult:
        """
        Add `days_to_add` (business days unless include_weekends), then push
        the landing date past the blackout unless the matter is excepted.

        Excepted matters (urgent, criminal, appeal deadlines) keep the
        unadjusted date: the underlying legal deadline cannot be extended.
        """
        matter = matter or MatterContext()
        if days_to_add < 0:
            raise ValueError(f"days_to_add cannot be negative, got: {days_to_add}")

        if matter.include_weekends:
            target = base_date + timedelta(days=days_to_add)
        else:
            target = self.add_business_days(base_date, days_to_add)

        period = self.blackout_for(target)
        if period is None:
            return DeadlineResult(
                original_date=base_date,
                adjusted_date=target,
                was_adjusted=False,
                reason="Deadline not affected by blackout period",
            )

        exception_reason = self._exception_reason(matter)
        if exception_reason:
            return DeadlineResult(
                original_date=base_date,
                adjusted_date=target,
                was_adjusted=False,
                reason=f"Exception applies: {exception_reason}",
                blackout_period=period,
            )

        adjusted = self.adjust_for_blackout(target)
        adjusted.original_date = base_date
        return adjusted

    def taxation_schedule(self, finalization_date: date, matter: MatterContext | None = None) -> TaxationSchedule:
        """Inspection, objection and set-down dates following a bill's finalization."""
        matter = matter or MatterContext()
        inspection = self.calculate_deadline(
            finalization_date, INSPECTION_PERIOD_DAYS, self._for_deadline(matter, "inspection")
        )
        objection = self.calculate_deadline(
            inspection.adjusted_date, OBJECTION_PERIOD_DAYS, self._for_deadline(matter, "objection")
        )
        set_down = self.calculate_deadline(
            objection.adjusted_date, SET_DOWN_DELAY_DAYS, self._for_deadline(matter, "set-down")
        )
        return TaxationSchedule(
            finalization_date=finalization_date,
            inspection=inspection,
            objection=objection,
            set_down=set_down,
        )

    # -------------------------------------------------------------------------
    # Court dates
    # -------------------------------------------------------------------------

    def next_available_court_date(self, from_date: date) -> DeadlineResult:
        """Next business day after `from_date` that is outside the blackout."""
        candidate = from_date + timedelta(days=1)
        while not self.is_business_day(candidate) or self.is_in_blackout(candidate):
            candidate += timedelta(days=1)
        skipped = (candidate - from_date).days
        return DeadlineResult(
            original_date=from_date,
            adjusted_date=candidate,
            was_adjusted=skipped > 1,
            reason="Adjusted to skip weekends and/or blackout period" if skipped > 1 else "Next business day",
            days_skipped=skipped,
        )

    def business_days_between(self, start: date, end: date) -> list[date]:
        """Business days in [start, end] that fall outside the blackout."""
        days = []
        current = start
        while current <= end:
            if self.is_business_day(current) and not self.is_in_blackout(current):
                days.append(current)
            current += timedelta(days=1)
        return days

    def days_until_next_blackout(self, from_date: date) -> int:
        period = self.blackout_period(from_date.year)
        if from_date > period.end_date:
            period = self.blackout_period(from_date.year + 1)
        return (period.start_date - from_date).days

    def validate_court_date(self, on_date: date, matter_type: str = "civil") -> dict:
        """Check a proposed court date; returns issues and recommendations."""
        issues = []
        recommendations = []

        if not self.is_business_day(on_date):
            issues.append("Date falls on weekend or public holiday")
            recommendations.append("Select a business day")

        if self.is_in_blackout(on_date):
            if matter_type == "urgent":
                recommendations.append("Urgent matter may proceed with proper justification")
            else:
                issues.append("Date falls within holiday blackout period")
                recommendations.append("Select date after blackout period ends")

        days_to_blackout = self.days_until_next_blackout(on_date)
        if 0 < days_to_blackout <= BLACKOUT_WARNING_DAYS:
            recommendations.append("Consider potential delays due to approaching blackout period")

        return {"is_valid": not issues, "issues": issues, "recommendations": recommendations}

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _exception_reason(matter: MatterContext) -> str | None:
        if matter.is_urgent or matter.matter_type == "urgent":
            return "Urgent matter exception applies"
        if matter.matter_type == "criminal":
            return "Criminal matter exception applies"
        if matter.deadline_type == "appeal" and matter.matter_type == "appeal":
            return "Appeal deadline exception applies"
        return None

    @staticmethod
    def _for_deadline(matter: MatterContext, deadline_type: str) -> MatterContext:
        return MatterContext(
            matter_type=matter.matter_type,
            deadline_type=deadline_type,
            is_urgent=matter.is_urgent,
            include_weekends=matter.include_weekends,
            court_type=matter.court_type,
        )
