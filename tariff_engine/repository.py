"""
Tariff Repository

Holds versioned tariff schedules and resolves the rate in force for an item
on a given work date. Schedules are frozen snapshots: readers grab one
reference per lookup, and `publish` swaps in a whole new snapshot.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from .exceptions import ItemNotFoundError, TariffNotFoundError
from .models import TariffRateItem, TariffSchedule, TariffVersion, parse_date
from .tariffs import ALL_TARIFFS

logger = logging.getLogger(__name__)

EXACT = "exact"
FALLBACK_TO_NEAREST_EARLIER = "fallback_to_nearest_earlier"
FUZZY_MATCH = "fuzzy_match"


@dataclass
class RateResolution:
    """A resolved tariff item plus how it was found."""

    item: TariffRateItem
    version: TariffVersion
    court_type: str
    scale: str
    resolution: str = EXACT
    warnings: list[str] = field(default_factory=list)

    @property
    def version_label(self) -> str:
        return f"{self.court_type} Scale {self.scale} ({self.version.effective_from.isoformat()})"


def build_snapshot(records: Iterable[dict]) -> dict[tuple[str, str], TariffSchedule]:
    """
    Group raw tariff records by (court_type, scale) into frozen schedules.

    Versions are sorted newest first. Overlapping versions within one
    schedule are rejected: at most one version may cover any date.
    """
    grouped: dict[tuple[str, str], list[TariffVersion]] = {}
    for record in records:
        key = (record["court_type"], str(record["scale"]))
        grouped.setdefault(key, []).append(TariffVersion.from_dict(record))

    snapshot = {}
    for (court_type, scale), versions in grouped.items():
        versions.sort(key=lambda v: v.effective_from, reverse=True)
        for i, newer in enumerate(versions):
            for older in versions[i + 1:]:
                if newer.overlaps(older):
                    raise ValueError(
                        f"Overlapping tariff versions for {court_type} Scale {scale}: "
                        f"{older.effective_from} and {newer.effective_from}"
                    )
        snapshot[(court_type, scale)] = TariffSchedule(court_type=court_type, scale=scale, versions=tuple(versions))
    return snapshot


class TariffRepository:
    """Read-only (at calculation time) store of tariff schedules."""

    def __init__(self, schedules: dict[tuple[str, str], TariffSchedule] | None = None):
        self._schedules = dict(schedules or {})
        self._publish_lock = threading.Lock()

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "TariffRepository":
        return cls(build_snapshot(records))

    @classmethod
    def default(cls) -> "TariffRepository":
        """Repository loaded with the bundled SA tariffs."""
        return cls.from_records(ALL_TARIFFS)

    def publish(self, records: Iterable[dict]) -> None:
        """Replace all schedules with a freshly built snapshot (atomic swap)."""
        snapshot = build_snapshot(records)
        with self._publish_lock:
            self._schedules = snapshot
        logger.info(f"Published tariff snapshot with {len(snapshot)} schedules")

    def schedules(self) -> list[tuple[str, str]]:
        return sorted(self._schedules)

    def get_schedule(self, court_type: str, scale: str) -> TariffSchedule:
        schedule = self._schedules.get((court_type, str(scale)))
        if schedule is None or not schedule.versions:
            raise TariffNotFoundError(f"No tariff schedule for {court_type} Scale {scale}", field="court_type")
        return schedule

    def resolve_rate(self, court_type: str, scale: str, item_code: str, on_date) -> RateResolution:
        """
        Resolve the tariff item in force on `on_date`.

        Lookup order:
        1. Version whose [effective_from, effective_to) contains the date
        2. FALLBACK_TO_NEAREST_EARLIER: latest version starting on/before the date
        3. Exact item_code match, then fuzzy label/description match
        """
        on_date = parse_date(on_date)
        schedule = self.get_schedule(court_type, scale)
        version, resolution, warnings = self._select_version(schedule, on_date)

        item = self._find_exact(version, item_code)
        if item is None:
            item, fuzzy_warning = self._find_fuzzy(version, item_code)
            if item is None:
                raise ItemNotFoundError(
                    f"Tariff item '{item_code}' not found in {court_type} Scale {scale} "
                    f"({version.effective_from.isoformat()})",
                    field="item_code",
                )
            warnings.append(fuzzy_warning)
            logger.warning(fuzzy_warning)
            if resolution == EXACT:
                resolution = FUZZY_MATCH

        return RateResolution(
            item=item,
            version=version,
            court_type=court_type,
            scale=str(scale),
            resolution=resolution,
            warnings=warnings,
        )

    def available_items(self, court_type: str, scale: str, on_date) -> list[TariffRateItem]:
        """All items in the version in force on `on_date`."""
        schedule = self.get_schedule(court_type, scale)
        version, _, _ = self._select_version(schedule, parse_date(on_date))
        return list(version.items)

    def rate_history(self, court_type: str, scale: str, item_code: str) -> list[dict]:
        """Rate of one item across every version, newest first."""
        schedule = self.get_schedule(court_type, scale)
        history = []
        for version in schedule.versions:
            item = self._find_exact(version, item_code)
            if item is not None:
                history.append({
                    "effective_from": version.effective_from,
                    "effective_to": version.effective_to,
                    "rate": item.rate,
                })
        return history

    def _select_version(self, schedule: TariffSchedule, on_date: date) -> tuple[TariffVersion, str, list[str]]:
        for version in schedule.versions:
            if version.contains(on_date):
                return version, EXACT, []

        # Versions are newest first: the first one starting on/before the date is the nearest earlier
        for version in schedule.versions:
            if version.effective_from <= on_date:
                message = (
                    f"No {schedule.court_type} Scale {schedule.scale} tariff in force on {on_date.isoformat()}; "
                    f"using nearest earlier version ({version.effective_from.isoformat()})"
                )
                logger.warning(message)
                return version, FALLBACK_TO_NEAREST_EARLIER, [message]

        raise ItemNotFoundError(
            f"No {schedule.court_type} Scale {schedule.scale} tariff version in force on or before "
            f"{on_date.isoformat()}",
            field="date",
        )

    @staticmethod
    def _find_exact(version: TariffVersion, item_code: str) -> TariffRateItem | None:
        for item in version.items:
            if item.item_code == item_code:
                return item
        return None

    @staticmethod
    def _find_fuzzy(version: TariffVersion, search: str) -> tuple[TariffRateItem | None, str]:
        term = search.strip().lower()
        if not term:
            return None, ""
        matches = [
            item for item in version.items
            if term in item.label.lower() or term in item.description.lower()
        ]
        if not matches:
            return None, ""
        chosen = matches[0]
        message = f"'{search}' matched tariff item {chosen.item_code} ({chosen.label}) by description"
        if len(matches) > 1:
            others = ", ".join(m.item_code for m in matches[1:])
            message += f"; ambiguous, also matched {others}"
        return chosen, message
