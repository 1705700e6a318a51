"""
Tax Filing Configuration Schema.

Settings for the statutory filing tracker.  Rates, due-day rules and
public holidays are jurisdiction data and live in ``ledger_config``;
this schema only names which jurisdiction to use and how far the
tracker looks around the current month.
"""

from dataclasses import dataclass
from typing import Self

from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.tax.config")


@dataclass
class TaxFilingConfig:
    """
    Configuration schema for the tax filing module.

        config = TaxFilingConfig(due_soon_window_months=6)
    """

    jurisdiction_code: str = "TL"

    # Months after the current one listed by get_filings_due_soon()
    due_soon_window_months: int = 3

    # Window used by get_filing_status_summary()
    summary_window_months: int = 2

    # Past months listed so overdue obligations stay visible
    look_back_months: int = 2

    # Annual WIT for the prior year is tracked during these months
    annual_tracking_months: tuple[int, ...] = (1, 2, 3)

    def __post_init__(self):
        if not self.jurisdiction_code:
            raise ValueError("jurisdiction_code cannot be empty")
        if self.due_soon_window_months < 0:
            raise ValueError("due_soon_window_months cannot be negative")
        if self.summary_window_months < 0:
            raise ValueError("summary_window_months cannot be negative")
        if self.look_back_months < 0:
            raise ValueError("look_back_months cannot be negative")
        for month in self.annual_tracking_months:
            if not 1 <= month <= 12:
                raise ValueError(
                    f"annual_tracking_months must hold months 1-12, got {month}"
                )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with Timor-Leste defaults."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        logger.info(
            "tax_filing_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        data = dict(data)
        if "annual_tracking_months" in data:
            data["annual_tracking_months"] = tuple(data["annual_tracking_months"])
        return cls(**data)
