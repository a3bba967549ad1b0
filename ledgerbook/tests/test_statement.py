"""Tests for ledger statements."""

from decimal import Decimal

import pytest

from ledgerbook.models import Account, Direction, LinePolicy
from ledgerbook.reconstruction import BalanceReconstructor
from ledgerbook.statement import DEFAULT_PARTICULARS, LedgerStatementBuilder, contra_particulars


@pytest.fixture
def builder():
    """Statement builder with default settings."""
    return LedgerStatementBuilder()


@pytest.fixture
def cash(sample_accounts):
    """The Cash account of the sample book."""
    return next(a for a in sample_accounts if a.name == "Cash")


class TestStatement:
    """Tests for statement()."""

    def test_opening_rows_and_closing(self, builder, cash, sample_transactions):
        """Cash from March to April."""
        statement = builder.statement(cash, sample_transactions, "2024-03-01", "2024-04-30")

        assert statement.opening_balance == Decimal("10000")
        assert statement.closing_balance == Decimal("10000")
        assert [row.transaction_id for row in statement.rows] == ["t3", "t4", "t5"]
        assert [row.running_balance for row in statement.rows] == [
            Decimal("9500"),
            Decimal("11500"),
            Decimal("10000"),
        ]
        assert [row.particulars for row in statement.rows] == ["Rent", "Customer", "Supplier"]
        assert statement.total_debit == Decimal("2000")
        assert statement.total_credit == Decimal("2000")

    def test_totals_explain_balance_change(self, builder, sample_accounts, sample_transactions):
        """Debits minus credits equal closing minus opening for every account."""
        for account in sample_accounts:
            statement = builder.statement(account, sample_transactions, "2024-02-01", "2024-04-10")
            assert statement.is_consistent
            assert (
                statement.total_debit - statement.total_credit
                == statement.closing_balance - statement.opening_balance
            )

    def test_closing_is_as_on_end_date(self, builder, sample_accounts, sample_transactions):
        """The closing balance excludes activity after the end date."""
        supplier = next(a for a in sample_accounts if a.name == "Supplier")
        statement = builder.statement(supplier, sample_transactions, "2024-01-01", "2024-03-31")
        assert statement.opening_balance == Decimal("0")
        assert statement.closing_balance == Decimal("-4000")
        assert statement.closing_direction is Direction.CREDIT
        [row] = statement.rows
        assert row.balance == Decimal("4000")
        assert row.direction is Direction.CREDIT

    def test_no_activity_in_period(self, builder, cash, sample_transactions):
        """A quiet period has equal opening and closing."""
        statement = builder.statement(cash, sample_transactions, "2024-01-01", "2024-02-28")
        assert statement.rows == []
        assert statement.opening_balance == statement.closing_balance == Decimal("10000")

    def test_same_date_rows_keep_input_order(self, builder, ledger, tx):
        """Ties on date are not reordered."""
        account = Account(name="Cash", group="Cash-in-hand", balance=Decimal("0"))
        transactions = [
            tx("b", "2024-05-01", ledger("Cash", "Dr", 10), ledger("Sales", "Cr", 10)),
            tx("a", "2024-05-01", ledger("Rent", "Dr", 10), ledger("Cash", "Cr", 10)),
        ]
        statement = builder.statement(account, transactions, "2024-05-01", "2024-05-01")
        assert [row.transaction_id for row in statement.rows] == ["b", "a"]
        assert statement.rows[0].running_balance == Decimal("10")

    def test_line_policy_applies_to_rows(self, ledger, tx):
        """Rows follow the reconstructor's line policy."""
        account = Account(name="Cash", group="Cash-in-hand", balance=Decimal("0"))
        transactions = [
            tx(
                "t1",
                "2024-05-01",
                ledger("Cash", "Dr", 100),
                ledger("Cash", "Dr", 50),
                ledger("Sales", "Cr", 150),
            )
        ]
        builder = LedgerStatementBuilder(BalanceReconstructor(LinePolicy.FIRST))
        statement = builder.statement(account, transactions, "2024-05-01", "2024-05-31")
        assert statement.total_debit == Decimal("100")
        assert statement.is_consistent


class TestParticulars:
    """Tests for contra account particulars."""

    def test_first_other_account(self, ledger, tx):
        """The first line of another account is named."""
        transaction = tx(
            "t1",
            "2024-05-01",
            ledger("Cash", "Cr", 30),
            ledger("Rent", "Dr", 20),
            ledger("Power", "Dr", 10),
        )
        assert contra_particulars(transaction, "Cash") == "Rent"

    def test_fallback_without_counterpart(self, ledger, tx):
        """Self-contra transactions use the fallback text."""
        transaction = tx("t1", "2024-05-01", ledger("Cash", "Dr", 5), ledger("Cash", "Cr", 5))
        assert contra_particulars(transaction, "Cash") == DEFAULT_PARTICULARS

    def test_custom_fallback(self, sample_accounts, ledger, tx):
        """The builder passes its fallback through."""
        builder = LedgerStatementBuilder(fallback_particulars="(self)")
        cash = next(a for a in sample_accounts if a.name == "Cash")
        transactions = [tx("t1", "2024-05-01", ledger("Cash", "Dr", 5), ledger("Cash", "Cr", 5))]
        statement = builder.statement(cash, transactions, "2024-05-01", "2024-05-01")
        assert statement.rows[0].particulars == "(self)"
