"""
Timor-Leste public holidays and business-day adjustment.

Responsibility:
    Computes the national holiday list for a year (fixed dates from the
    jurisdiction pack plus Easter-relative holidays) and moves a
    statutory date forward to the next business day.  ``HolidayCalendar``
    layers a tenant's overrides (added or removed holidays) on top.

Architecture position:
    ledger_modules -- the module-level functions are pure; only
    ``HolidayCalendar`` reads from a collaborator, through the
    ``HolidayOverrideSource`` protocol.

Invariants enforced:
    - Holiday set for a date = national holidays of its year, plus
      ``extra_defaults``, plus tenant additions, minus tenant removals.
      An addition wins over a removal of the same date.
    - Adjustment is bounded (``max_adjustment_days`` of the pack, 14 for
      Timor-Leste).  If no business day is found within the bound the
      input date is returned unchanged.
    - A calendar fetches overrides once per (tenant, year) and reuses
      them for its lifetime.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from functools import lru_cache
from typing import Iterable

from ledger_config import JurisdictionPack, get_jurisdiction
from ledger_kernel.logging_config import get_logger
from ledger_modules.tax.models import HolidayOverride
from ledger_modules.tax.sources import HolidayOverrideSource

logger = get_logger("modules.tax.holidays")


@dataclass(frozen=True)
class PublicHoliday:
    date: date
    name: str
    name_tl: str | None = None
    variable: bool = False


@dataclass(frozen=True)
class HolidayOverrides:
    """Tenant changes to the national list."""

    additions: frozenset[date] = field(default_factory=frozenset)
    removals: frozenset[date] = field(default_factory=frozenset)

    @classmethod
    def from_records(cls, records: Iterable[HolidayOverride]) -> HolidayOverrides:
        additions = set()
        removals = set()
        for record in records:
            (additions if record.is_holiday else removals).add(record.date)
        return cls(frozenset(additions), frozenset(removals))

    def merge(self, other: HolidayOverrides) -> HolidayOverrides:
        return HolidayOverrides(
            self.additions | other.additions,
            self.removals | other.removals,
        )


NO_OVERRIDES = HolidayOverrides()


@lru_cache(maxsize=1)
def _default_pack() -> JurisdictionPack:
    return get_jurisdiction("TL")


def easter_sunday(year: int) -> date:
    """Gregorian Easter Sunday (anonymous Meeus/Jones/Butcher algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def public_holidays(year: int, jurisdiction: JurisdictionPack | None = None) -> list[PublicHoliday]:
    """National public holidays of ``year``, sorted by date."""
    pack = jurisdiction or _default_pack()
    holidays = [
        PublicHoliday(date(year, h.month, h.day), h.name, h.name_tl)
        for h in pack.fixed_holidays
    ]
    easter = easter_sunday(year)
    holidays.extend(
        PublicHoliday(easter + timedelta(days=h.offset_days), h.name, h.name_tl, variable=True)
        for h in pack.easter_holidays
    )
    return sorted(holidays, key=lambda h: h.date)


@lru_cache(maxsize=128)
def _holiday_dates(year: int, jurisdiction: JurisdictionPack) -> frozenset[date]:
    return frozenset(h.date for h in public_holidays(year, jurisdiction))


def timor_leste_holidays(year: int) -> list[PublicHoliday]:
    return public_holidays(year, _default_pack())


def is_business_day(
    day: date,
    overrides: HolidayOverrides = NO_OVERRIDES,
    extra_defaults: frozenset[date] = frozenset(),
    jurisdiction: JurisdictionPack | None = None,
) -> bool:
    if day.weekday() >= 5:
        return False
    if day in overrides.additions:
        return False
    national = day in _holiday_dates(day.year, jurisdiction or _default_pack())
    if (national or day in extra_defaults) and day not in overrides.removals:
        return False
    return True


def adjust_to_next_business_day(
    day: date,
    overrides: HolidayOverrides = NO_OVERRIDES,
    extra_defaults: frozenset[date] = frozenset(),
    jurisdiction: JurisdictionPack | None = None,
) -> date:
    """
    First business day on or after ``day``.

    Args:
        overrides: Tenant additions and removals.
        extra_defaults: Additional holidays treated like national ones
            (removable by a tenant removal), e.g. a variable Eid date.
        jurisdiction: Pack supplying holidays and the iteration bound.
    """
    pack = jurisdiction or _default_pack()
    cursor = day
    for _ in range(pack.due_dates.max_adjustment_days):
        if is_business_day(cursor, overrides, extra_defaults, pack):
            return cursor
        cursor += timedelta(days=1)

    logger.warning(
        "business_day_not_found",
        extra={
            "base_date": day.isoformat(),
            "max_days": pack.due_dates.max_adjustment_days,
        },
    )
    return day


class HolidayCalendar:
    """
    Holiday-aware date adjustment for one tenant.

    Contract:
        Overrides are fetched through ``source`` at most once per year
        for the lifetime of the calendar.  Create a calendar per
        computation batch; a long-lived calendar will not see overrides
        edited after its first fetch.

    Non-goals:
        - Does NOT write overrides.
    """

    def __init__(
        self,
        source: HolidayOverrideSource | None,
        tenant_id: str,
        jurisdiction: JurisdictionPack | None = None,
        extra_defaults: frozenset[date] = frozenset(),
    ):
        self.source = source
        self.tenant_id = tenant_id
        self.jurisdiction = jurisdiction or _default_pack()
        self.extra_defaults = extra_defaults
        self._cache: dict[int, HolidayOverrides] = {}

    def overrides_for(self, year: int) -> HolidayOverrides:
        if year not in self._cache:
            if self.source is None:
                self._cache[year] = NO_OVERRIDES
            else:
                records = self.source.list_overrides(self.tenant_id, year)
                self._cache[year] = HolidayOverrides.from_records(
                    r for r in records if r.date.year == year
                )
                logger.debug(
                    "holiday_overrides_loaded",
                    extra={
                        "tenant_id": self.tenant_id,
                        "year": year,
                        "additions": len(self._cache[year].additions),
                        "removals": len(self._cache[year].removals),
                    },
                )
        return self._cache[year]

    def adjust(self, day: date) -> date:
        overrides = self.overrides_for(day.year)
        # A late-December date can roll into January
        if day.month == 12:
            overrides = overrides.merge(self.overrides_for(day.year + 1))
        return adjust_to_next_business_day(
            day, overrides, self.extra_defaults, self.jurisdiction
        )

    def holidays(self, year: int) -> list[date]:
        """Effective holiday dates of ``year`` for this tenant."""
        overrides = self.overrides_for(year)
        national = _holiday_dates(year, self.jurisdiction) | {
            d for d in self.extra_defaults if d.year == year
        }
        return sorted((national - overrides.removals) | overrides.additions)
