"""
Reporting Configuration Schema.

Presentation options for the trial balance, income statement and
balance sheet.  Classification comes from each account's type, not from
code prefixes, so a tenant's custom accounts land in the right section.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.
    """

    # Entity name shown on reports
    entity_name: str = "Company"

    # Timor-Leste reports in US dollars
    currency: str = "USD"

    display_precision: int = 2

    # Accounts whose balance rounds to zero are omitted unless set
    include_zero_balances: bool = False

    include_inactive: bool = False

    current_year_earnings_label: str = "Current Year Earnings"

    prior_years_earnings_label: str = "Prior Years Earnings"

    def __post_init__(self):
        if self.display_precision < 0:
            raise ValueError("display_precision cannot be negative")
        if len(self.currency) != 3:
            raise ValueError("currency must be a 3-letter ISO 4217 code")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
