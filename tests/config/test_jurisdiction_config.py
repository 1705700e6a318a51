"""
Jurisdiction pack loading (ledger_config).

Verifies:
- The bundled Timor-Leste pack parses into the expected rates, due-date
  rules, holidays and default chart
- Malformed packs are rejected with the offending key
- Module configs validate in __post_init__
"""

from decimal import Decimal

import pytest
import yaml

from ledger_config import get_jurisdiction, load_jurisdiction
from ledger_config.loader import compute_checksum, load_yaml_file, parse_jurisdiction
from ledger_config.schema import DueDateRules, TaxRates
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.tax.config import TaxFilingConfig


@pytest.fixture
def tl_pack():
    return get_jurisdiction("TL")


@pytest.fixture
def raw_pack():
    from ledger_config import _DEFAULT_CONFIG_DIR

    return load_yaml_file(_DEFAULT_CONFIG_DIR / "timor_leste.yaml")


class TestTimorLestePack:

    def test_tax_rates(self, tl_pack):
        assert tl_pack.tax.wit_rate == Decimal("0.10")
        assert tl_pack.tax.wit_resident_monthly_threshold == Decimal("500.00")
        assert tl_pack.tax.inss_employee_rate == Decimal("0.04")
        assert tl_pack.tax.inss_employer_rate == Decimal("0.06")

    def test_due_date_rules(self, tl_pack):
        rules = tl_pack.due_dates
        assert (rules.monthly_wit_day, rules.inss_statement_day, rules.inss_payment_day) == (15, 10, 20)
        assert (rules.annual_wit_month, rules.annual_wit_day) == (3, 31)

    def test_holidays(self, tl_pack):
        fixed = {(h.month, h.day) for h in tl_pack.fixed_holidays}
        assert (1, 1) in fixed
        assert (5, 20) in fixed
        assert (11, 28) in fixed
        assert {h.offset_days for h in tl_pack.easter_holidays} == {-2, 60}

    def test_default_chart_is_ordered_parent_first(self, tl_pack):
        seen = set()
        for account in tl_pack.chart_of_accounts:
            if account.parent_code is not None:
                assert account.parent_code in seen
            seen.add(account.code)
        assert len(tl_pack.chart_of_accounts) == 74

    def test_posting_accounts_exist_in_chart(self, tl_pack):
        codes = {a.code for a in tl_pack.chart_of_accounts}
        accounts = tl_pack.posting_accounts
        for code in (
            accounts.trade_receivables,
            accounts.cash_on_hand,
            accounts.cash_in_bank,
            accounts.default_revenue,
            accounts.salaries_expense,
            accounts.wit_payable,
            accounts.inss_employee_payable,
            accounts.inss_employer_payable,
        ):
            assert code in codes

    def test_checksum_is_deterministic(self, tl_pack):
        assert tl_pack.checksum == get_jurisdiction("TL").checksum
        assert len(tl_pack.checksum) == 64

    def test_unknown_jurisdiction(self):
        with pytest.raises(FileNotFoundError):
            get_jurisdiction("XX")


class TestMalformedPacks:

    def test_float_rate_rejected(self, raw_pack):
        raw_pack["tax"]["wit_rate"] = 0.1
        with pytest.raises(ValueError, match="quoted"):
            parse_jurisdiction(raw_pack)

    def test_rate_out_of_range(self, raw_pack):
        raw_pack["tax"]["inss_employer_rate"] = "1.5"
        with pytest.raises(ValueError, match="inss_employer_rate"):
            parse_jurisdiction(raw_pack)

    def test_missing_tax_section(self, raw_pack):
        del raw_pack["tax"]
        with pytest.raises(KeyError):
            parse_jurisdiction(raw_pack)

    def test_duplicate_account_code(self, raw_pack):
        raw_pack["chart_of_accounts"].append(dict(raw_pack["chart_of_accounts"][0]))
        with pytest.raises(ValueError, match="Duplicate"):
            parse_jurisdiction(raw_pack)

    def test_parent_defined_after_child(self, raw_pack):
        raw_pack["chart_of_accounts"].insert(
            0,
            {"code": "1999", "name": "Orphan", "type": "asset",
             "sub_type": "other_asset", "parent": "1000"},
        )
        with pytest.raises(ValueError, match="before it is defined"):
            parse_jurisdiction(raw_pack)

    def test_load_from_override_file(self, raw_pack, tmp_path):
        raw_pack["tax"]["wit_rate"] = "0.20"
        path = tmp_path / "custom.yaml"
        path.write_text(yaml.safe_dump(raw_pack), encoding="utf-8")

        pack = load_jurisdiction(path)
        assert pack.tax.wit_rate == Decimal("0.20")
        assert pack.checksum == compute_checksum(raw_pack)


class TestSchemaValidation:

    def test_due_day_must_exist_in_every_month(self):
        with pytest.raises(ValueError):
            DueDateRules(monthly_wit_day=31)

    def test_negative_threshold(self):
        with pytest.raises(ValueError):
            TaxRates(
                wit_rate=Decimal("0.10"),
                wit_resident_monthly_threshold=Decimal("-1"),
                inss_employee_rate=Decimal("0.04"),
                inss_employer_rate=Decimal("0.06"),
            )


class TestModuleConfigs:

    def test_reporting_defaults(self):
        config = ReportingConfig.with_defaults()
        assert config.currency == "USD"
        assert config.include_zero_balances is False

    def test_reporting_rejects_bad_currency(self):
        with pytest.raises(ValueError):
            ReportingConfig(currency="DOLLARS")

    def test_tax_filing_from_dict(self):
        config = TaxFilingConfig.from_dict(
            {"due_soon_window_months": 6, "annual_tracking_months": [1, 2]}
        )
        assert config.due_soon_window_months == 6
        assert config.annual_tracking_months == (1, 2)

    def test_tax_filing_rejects_bad_month(self):
        with pytest.raises(ValueError):
            TaxFilingConfig(annual_tracking_months=(13,))
