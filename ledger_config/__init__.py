"""
ledger_config -- jurisdiction configuration entry point.

Responsibility:
    ``get_jurisdiction(code)`` returns the parsed ``JurisdictionPack``
    (tax rates, due-date rules, public holidays, default chart of
    accounts, posting account codes) for a jurisdiction.  No other
    component reads the YAML files directly.

Architecture position:
    Lowest layer.  Imports nothing from ``ledger_kernel`` or
    ``ledger_modules``; both of those read configuration through here.

Failure modes:
    - ``FileNotFoundError`` for an unknown jurisdiction code.
    - ``ValueError`` / ``KeyError`` for a malformed pack.

Audit relevance:
    Every load emits a ``jurisdiction_loaded`` log entry carrying the
    pack checksum, tying computed taxes and seeded charts to the exact
    configuration that produced them.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.loader import load_jurisdiction
from ledger_config.schema import (
    DefaultAccount,
    DueDateRules,
    EasterRelativeHoliday,
    FixedHoliday,
    JurisdictionPack,
    PostingAccounts,
    TaxRates,
)

_logger = logging.getLogger("ledger_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "jurisdictions"

_PACK_FILES = {
    "TL": "timor_leste.yaml",
}


def get_jurisdiction(code: str = "TL", config_dir: Path | None = None) -> JurisdictionPack:
    """
    Load the jurisdiction pack for ``code``.

    Args:
        code: Jurisdiction code (``"TL"``).
        config_dir: Override directory holding the YAML packs.

    Raises:
        FileNotFoundError: No pack is registered or present for ``code``.
    """
    try:
        filename = _PACK_FILES[code]
    except KeyError:
        raise FileNotFoundError(f"No jurisdiction pack registered for {code!r}") from None

    pack = load_jurisdiction((config_dir or _DEFAULT_CONFIG_DIR) / filename)
    _logger.info(
        "jurisdiction_loaded",
        extra={
            "jurisdiction": pack.code,
            "checksum": pack.checksum,
            "account_count": len(pack.chart_of_accounts),
            "holiday_count": len(pack.fixed_holidays) + len(pack.easter_holidays),
        },
    )
    return pack


__all__ = [
    "get_jurisdiction",
    "load_jurisdiction",
    "DefaultAccount",
    "DueDateRules",
    "EasterRelativeHoliday",
    "FixedHoliday",
    "JurisdictionPack",
    "PostingAccounts",
    "TaxRates",
]
