"""Tests for the company session facade."""

from decimal import Decimal

from pydantic import ValidationError
import pytest

from ledgerbook.aggregation import Scope
from ledgerbook.config import LedgerbookConfig
from ledgerbook.engine import LedgerEngine
from ledgerbook.models import NaturalClass


@pytest.fixture
def engine(sample_accounts, sample_transactions, widget):
    """Engine loaded with the sample book."""
    engine = LedgerEngine()
    engine.load(sample_accounts, sample_transactions, [widget])
    return engine


@pytest.fixture
def raw_records():
    """The kind of records the persistence layer hands over."""
    accounts = [
        {"id": "l-1", "name": "Cash", "group": "Cash-in-hand", "balance": 700, "type": "Dr"},
        {"id": "l-2", "name": "Stock", "group": "Stock-in-hand", "balance": 300, "type": "Dr"},
        {"id": "l-3", "name": "Capital", "group": "Capital Account", "balance": 1000, "type": "Cr"},
    ]
    vouchers = [
        {
            "id": "v-1",
            "voucherNo": "1",
            "date": "2024-06-01",
            "type": "Payment",
            "rows": [
                {"type": "Dr", "account": "Stock", "debit": 300, "credit": 0},
                {"type": "Cr", "account": "Cash", "debit": 0, "credit": 300},
            ],
        }
    ]
    groups = [{"name": "Stock-in-hand", "parentType": "ASSETS"}]
    return accounts, vouchers, groups


class TestFromRecords:
    """Tests for opening a session from stored records."""

    def test_from_records(self, raw_records):
        """Records are validated and custom groups registered."""
        accounts, vouchers, groups = raw_records
        engine = LedgerEngine.from_records(accounts, vouchers, custom_groups=groups)

        assert engine.classifier.classify("Stock-in-hand") is NaturalClass.ASSETS
        assert engine.balance_as_of("Cash", "2024-05-31") == Decimal("1000")
        assert engine.check_identity(Scope.as_on("2024-05-31")) == (True, Decimal("0"))

    def test_legacy_stock_masters(self, legacy_voucher_records):
        """Stored items without live figures roll forward from their opening stock."""
        accounts = [
            {"name": "Purchases", "group": "Purchase Accounts", "balance": 1000, "type": "Dr"},
            {"name": "Supplier", "group": "Sundry Creditors", "balance": 1000, "type": "Cr"},
        ]
        items = [{"id": "widget", "name": "Widget", "openingStock": 10, "openingValue": 800}]
        engine = LedgerEngine.from_records(accounts, legacy_voucher_records, stock_items=items)

        position = engine.stock_position("widget", "2024-06-01", "2024-06-30")
        assert position.opening_quantity == Decimal("10")
        assert position.closing_quantity == Decimal("20")
        # 1,800 available over 20 units
        assert position.closing_value == Decimal("1800.00")
        assert engine.stock_register("widget", "2024-06-01", "2024-06-30").closing_quantity == Decimal(
            "20"
        )

    def test_invalid_records_rejected(self):
        """Validation errors surface at the boundary."""
        with pytest.raises(ValidationError):
            LedgerEngine.from_records([{"name": "Cash"}], [])

    def test_sessions_are_isolated(self, raw_records):
        """A custom group in one company is unknown to another."""
        accounts, vouchers, groups = raw_records
        LedgerEngine.from_records(accounts, vouchers, custom_groups=groups)
        other = LedgerEngine()
        assert not other.classifier.is_registered("Stock-in-hand")

    def test_config_drives_calculators(self):
        """Line policy and currency places come from the config."""
        config = LedgerbookConfig.from_dict({"engine": {"line_policy": "first", "currency_places": 3}})
        engine = LedgerEngine(config)
        assert engine.reconstructor.line_policy.value == "first"
        assert engine.movement_calculator.line_policy.value == "first"
        assert engine.stock_reconciler.currency_places == 3


class TestQueries:
    """Tests for the delegating query methods."""

    def test_balances_and_movement(self, engine):
        """Balance and movement queries by account name."""
        assert engine.balance_as_of("Cash", "2024-03-31") == Decimal("9500")
        assert engine.movement("Sales", "2024-01-01", "2024-03-31") == Decimal("-3000")
        assert engine.movement_breakdown("Sales", "2024-01-01", "2024-03-31").oriented == Decimal("3000")

    def test_unknown_account(self, engine):
        """Unknown names raise KeyError."""
        with pytest.raises(KeyError, match="Unknown account"):
            engine.balance_as_of("Ghost", "2024-03-31")

    def test_summaries_and_identity(self, engine):
        """Group summaries default to live balances."""
        assets = engine.summarize(NaturalClass.ASSETS)
        assert sum(s.total for s in assets) == Decimal("11000")
        assert engine.check_identity() == (True, Decimal("0"))

    def test_register_group(self, engine):
        """Registering a group moves its accounts; the identity still holds."""
        engine.register_group("Capital Account", "ASSETS")
        assets = {s.group_name: s.total for s in engine.summarize("ASSETS")}
        assert assets["Capital Account"] == Decimal("-10000")
        assert engine.check_identity() == (True, Decimal("0"))

    def test_statement(self, engine):
        """Statements come back for accounts by name."""
        statement = engine.statement("Cash", "2024-03-01", "2024-04-30")
        assert len(statement.rows) == 3
        assert len(engine.ledger_statement_frame("Cash", "2024-03-01", "2024-04-30")) == 5

    def test_stock(self, engine):
        """Stock queries by item id."""
        assert engine.stock_position("widget", "2024-01-01", "2024-03-31").closing_value == Decimal(
            "2880.00"
        )
        assert engine.stock_register("widget", "2024-01-01", "2024-12-31").closing_quantity == Decimal(
            "30"
        )
        assert engine.closing_stock_value("2024-01-01", "2024-03-31") == Decimal("2880.00")
        with pytest.raises(KeyError, match="Unknown stock item"):
            engine.stock_item("gadget")

    def test_ratios(self, engine):
        """Ratios include the session's stock."""
        ratios = engine.ratios("2024-04-30")
        assert ratios["Current Ratio"].display == "5.55"
        assert list(engine.ratio_table("2024-04-30")["Value"]) == ["5.55", "4.40", "-33.33%", "-50.00%"]

    def test_reports(self, engine):
        """Report tables are produced for the session snapshot."""
        assert engine.trial_balance("2024-04-30").attrs["difference"] == Decimal("0")
        assert engine.balance_sheet("2024-04-30").attrs["is_balanced"]
        assert engine.profit_and_loss("2024-01-01", "2024-04-30").attrs["net_profit"] == Decimal("-1500")
        assert engine.stock_summary("2024-01-01", "2024-03-31").attrs["total_closing_value"] == Decimal(
            "2880.00"
        )
        groups = engine.group_table(Scope.as_on("2024-04-30"))
        assert set(groups["Class"]) == {c.value for c in NaturalClass}

    def test_check_integrity(self, engine, sample_openings):
        """Integrity checks use the session snapshot."""
        assert engine.check_integrity(sample_openings).is_clean
