"""Pytest configuration and shared fixtures.

The sample book is a small trading company whose live balances are exactly
the result of its opening balances plus the transactions below:

==========  =====================  ===================  ==========  ==========
Date        Type                   Debit                Credit      Amount
==========  =====================  ===================  ==========  ==========
2024-01-10  Purchase (40 Widgets)  Purchases            Supplier    4,000
2024-02-15  Sales (20 Widgets)     Customer             Sales       3,000
2024-03-01  Payment                Rent                 Cash          500
2024-04-05  Receipt                Cash                 Customer    2,000
2024-04-20  Payment                Supplier             Cash        1,500
==========  =====================  ===================  ==========  ==========

Cash and Capital opened at 10,000 each before the first transaction.
"""

from decimal import Decimal

import pytest

from ledgerbook.classifier import AccountClassifier
from ledgerbook.models import (
    Account,
    Direction,
    InventoryLine,
    LedgerLine,
    StockItem,
    StockMovement,
    Transaction,
)


def _ledger_line(account, direction, amount):
    """Build a ledger line from a ``"Dr"``/``"Cr"`` label."""
    return LedgerLine(account=account, direction=Direction(direction), amount=Decimal(str(amount)))


def _transaction(tx_id, date, *lines, tx_type="Journal", number=""):
    """Build a transaction with the given lines."""
    return Transaction(id=tx_id, number=number or tx_id, date=date, type=tx_type, lines=lines)


@pytest.fixture
def ledger():
    """Builder for ledger lines: ``ledger("Cash", "Dr", 100)``."""
    return _ledger_line


@pytest.fixture
def tx():
    """Builder for transactions: ``tx("t1", "2024-05-01", *lines)``."""
    return _transaction


@pytest.fixture
def classifier():
    """Fresh classifier with only the built-in groups."""
    return AccountClassifier()


@pytest.fixture
def sample_accounts():
    """Live account balances of the sample book."""
    return [
        Account(name="Cash", group="Cash-in-hand", balance=Decimal("10000"), direction=Direction.DEBIT),
        Account(name="Customer", group="Sundry Debtors", balance=Decimal("1000"), direction=Direction.DEBIT),
        Account(name="Supplier", group="Sundry Creditors", balance=Decimal("2500"), direction=Direction.CREDIT),
        Account(name="Capital", group="Capital Account", balance=Decimal("10000"), direction=Direction.CREDIT),
        Account(name="Sales", group="Sales Accounts", balance=Decimal("3000"), direction=Direction.CREDIT),
        Account(name="Purchases", group="Purchase Accounts", balance=Decimal("4000"), direction=Direction.DEBIT),
        Account(name="Rent", group="Indirect Expenses", balance=Decimal("500"), direction=Direction.DEBIT),
    ]


@pytest.fixture
def sample_transactions(ledger, tx):
    """Transactions of the sample book, in date order."""
    return [
        tx(
            "t1",
            "2024-01-10",
            ledger("Purchases", "Dr", 4000),
            ledger("Supplier", "Cr", 4000),
            InventoryLine(
                item="widget",
                movement=StockMovement.INWARD,
                quantity=Decimal("40"),
                rate=Decimal("100"),
            ),
            tx_type="Purchase",
        ),
        tx(
            "t2",
            "2024-02-15",
            ledger("Customer", "Dr", 3000),
            ledger("Sales", "Cr", 3000),
            InventoryLine(
                item="widget",
                movement=StockMovement.OUTWARD,
                quantity=Decimal("20"),
                rate=Decimal("150"),
            ),
            tx_type="Sales",
        ),
        tx("t3", "2024-03-01", ledger("Rent", "Dr", 500), ledger("Cash", "Cr", 500), tx_type="Payment"),
        tx("t4", "2024-04-05", ledger("Cash", "Dr", 2000), ledger("Customer", "Cr", 2000), tx_type="Receipt"),
        tx("t5", "2024-04-20", ledger("Supplier", "Dr", 1500), ledger("Cash", "Cr", 1500), tx_type="Payment"),
    ]


@pytest.fixture
def sample_openings():
    """Signed opening balances before the first transaction."""
    return {"Cash": Decimal("10000"), "Capital": Decimal("-10000")}


@pytest.fixture
def widget():
    """Stock item of the sample book: 10 units worth 800 opened, 30 now worth 1,800."""
    return StockItem(
        id="widget",
        name="Widget",
        unit="pcs",
        opening_quantity=Decimal("10"),
        opening_value=Decimal("800"),
        current_quantity=Decimal("30"),
        current_value=Decimal("1800"),
    )


@pytest.fixture
def legacy_voucher_records():
    """Vouchers in the stored row layout."""
    return [
        {
            "id": "v-1",
            "voucherNo": "1",
            "date": "2024-06-01",
            "type": "Purchase",
            "narration": "Stock purchase",
            "rows": [
                {
                    "id": "r-1",
                    "type": "Dr",
                    "account": "Purchases",
                    "debit": 1000,
                    "credit": 0,
                    "inventoryAllocations": [
                        {"itemId": "widget", "quantity": 10, "rate": 100, "amount": 1000}
                    ],
                },
                {"id": "r-2", "type": "Cr", "account": "Supplier", "debit": 0, "credit": 1000},
                {"id": "r-3", "type": "Dr", "account": "", "debit": 0, "credit": 0},
            ],
        }
    ]
