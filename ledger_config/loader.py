"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML jurisdiction pack and parses it into the frozen dataclasses
of ``ledger_config.schema``.  Callers use ``ledger_config.get_jurisdiction``;
``load_jurisdiction`` is exposed for tests and tenant-specific packs.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with the offending
  key; required fields never get silent defaults.
* Monetary rates are parsed from strings into ``Decimal``.
* ``compute_checksum`` gives a deterministic SHA-256 of the raw document
  so a loaded pack can be matched to its source file.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Duplicate account codes or unknown parents  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    DefaultAccount,
    DueDateRules,
    EasterRelativeHoliday,
    FixedHoliday,
    JurisdictionPack,
    PostingAccounts,
    TaxRates,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty document yields ``{}``."""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 over a canonical JSON rendering of the parsed document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_decimal(value: Any, key: str) -> Decimal:
    if isinstance(value, float):
        raise ValueError(f"{key} must be quoted to keep decimal precision, got {value!r}")
    try:
        return Decimal(str(value))
    except ArithmeticError as exc:
        raise ValueError(f"{key} is not a decimal: {value!r}") from exc


def parse_tax(data: dict[str, Any]) -> TaxRates:
    return TaxRates(
        wit_rate=parse_decimal(data["wit_rate"], "tax.wit_rate"),
        wit_resident_monthly_threshold=parse_decimal(
            data["wit_resident_monthly_threshold"],
            "tax.wit_resident_monthly_threshold",
        ),
        inss_employee_rate=parse_decimal(data["inss_employee_rate"], "tax.inss_employee_rate"),
        inss_employer_rate=parse_decimal(data["inss_employer_rate"], "tax.inss_employer_rate"),
    )


def parse_due_dates(data: dict[str, Any]) -> DueDateRules:
    return DueDateRules(**{k: int(v) for k, v in data.items()})


def parse_fixed_holiday(data: dict[str, Any]) -> FixedHoliday:
    """Parse ``{date: "MM-DD", name, name_tl}``."""
    month_str, day_str = str(data["date"]).split("-")
    return FixedHoliday(
        month=int(month_str),
        day=int(day_str),
        name=data["name"],
        name_tl=data.get("name_tl"),
    )


def parse_easter_holiday(data: dict[str, Any]) -> EasterRelativeHoliday:
    return EasterRelativeHoliday(
        offset_days=int(data["offset"]),
        name=data["name"],
        name_tl=data.get("name_tl"),
    )


def parse_account(data: dict[str, Any]) -> DefaultAccount:
    return DefaultAccount(
        code=str(data["code"]),
        name=data["name"],
        account_type=data["type"],
        sub_type=data["sub_type"],
        is_system=bool(data.get("is_system", False)),
        parent_code=str(data["parent"]) if data.get("parent") else None,
        name_tl=data.get("name_tl"),
        description=data.get("description"),
    )


def _validate_chart(accounts: tuple[DefaultAccount, ...]) -> None:
    seen: set[str] = set()
    for account in accounts:
        if account.code in seen:
            raise ValueError(f"Duplicate account code in chart: {account.code}")
        if account.parent_code is not None and account.parent_code not in seen:
            raise ValueError(
                f"Account {account.code} lists parent {account.parent_code} "
                "before it is defined"
            )
        seen.add(account.code)


def parse_jurisdiction(data: dict[str, Any]) -> JurisdictionPack:
    """Build a ``JurisdictionPack`` from a parsed YAML document."""
    header = data["jurisdiction"]
    holidays = data.get("holidays", {})
    accounts = tuple(parse_account(a) for a in data.get("chart_of_accounts", []))
    _validate_chart(accounts)

    return JurisdictionPack(
        code=header["code"],
        name=header["name"],
        currency=header["currency"],
        utc_offset_hours=int(header.get("utc_offset_hours", 0)),
        tax=parse_tax(data["tax"]),
        due_dates=parse_due_dates(data.get("due_dates", {})),
        fixed_holidays=tuple(parse_fixed_holiday(h) for h in holidays.get("fixed", [])),
        easter_holidays=tuple(
            parse_easter_holiday(h) for h in holidays.get("easter_relative", [])
        ),
        posting_accounts=PostingAccounts(**{
            k: str(v) for k, v in data.get("posting_accounts", {}).items()
        }),
        chart_of_accounts=accounts,
        checksum=compute_checksum(data),
    )


def load_jurisdiction(path: Path) -> JurisdictionPack:
    """Load and parse a jurisdiction pack from ``path``."""
    return parse_jurisdiction(load_yaml_file(path))
