"""Single-account ledger statements.

A statement is built entirely from the account's live balance:

1. The closing balance is reconstructed as of the end date.
2. Walking backward through the in-period transactions from the closing
   balance gives the opening balance (the balance just before the start).
3. Walking forward from the opening balance produces the running balance
   shown on each row.

Because both walks use the same deltas, ``total_debit - total_credit`` always
equals ``closing_balance - opening_balance``.
"""

from dataclasses import dataclass, field
from decimal import Decimal
import logging
from typing import List, Optional

from .decimal_utils import ZERO
from .models import Account, Direction, Transaction, to_date_key
from .reconstruction import (
    BalanceReconstructor,
    DateLike,
    TransactionSource,
    matching_lines,
    signed_delta,
    transactions_for,
)

logger = logging.getLogger(__name__)

# Particulars shown when a transaction has no other account to name
DEFAULT_PARTICULARS = "As per Details"


@dataclass(frozen=True)
class StatementRow:
    """One transaction on a ledger statement.

    Attributes:
        date: Transaction date
        transaction_id: Transaction identifier
        number: Voucher number
        transaction_type: Voucher type tag
        particulars: Contra account shown for the row
        debit: Debit amount posted to the account
        credit: Credit amount posted to the account
        running_balance: Signed balance after this row
    """

    date: str
    transaction_id: str
    number: str
    transaction_type: str
    particulars: str
    debit: Decimal
    credit: Decimal
    running_balance: Decimal

    @property
    def balance(self) -> Decimal:
        return abs(self.running_balance)

    @property
    def direction(self) -> Direction:
        return Direction.of(self.running_balance)


@dataclass
class LedgerStatement:
    """Statement of one account for a date range.

    Attributes:
        account: Account name
        start_date: First date of the statement (inclusive)
        end_date: Last date of the statement (inclusive)
        opening_balance: Signed balance immediately before ``start_date``
        closing_balance: Signed balance at the end of ``end_date``
        rows: In-period transactions in date order
        total_debit: Sum of row debits
        total_credit: Sum of row credits
    """

    account: str
    start_date: str
    end_date: str
    opening_balance: Decimal
    closing_balance: Decimal
    rows: List[StatementRow] = field(default_factory=list)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO

    @property
    def opening_direction(self) -> Direction:
        return Direction.of(self.opening_balance)

    @property
    def closing_direction(self) -> Direction:
        return Direction.of(self.closing_balance)

    @property
    def net_movement(self) -> Decimal:
        return self.total_debit - self.total_credit

    @property
    def is_consistent(self) -> bool:
        """Whether the totals explain the change from opening to closing."""
        return self.net_movement == self.closing_balance - self.opening_balance


def contra_particulars(
    transaction: Transaction, account: str, fallback: str = DEFAULT_PARTICULARS
) -> str:
    """Name of the first other account a transaction posts to.

    With more than two lines this names only the first counterpart; the
    rest are left to the voucher view.
    """
    for line in transaction.ledger_lines():
        if line.account and line.account != account:
            return line.account
    return fallback


class LedgerStatementBuilder:
    """Builds ledger statements from live balances.

    Attributes:
        reconstructor: Used for the closing balance and the line policy
        fallback_particulars: Particulars text when no contra account exists
    """

    def __init__(
        self,
        reconstructor: Optional[BalanceReconstructor] = None,
        fallback_particulars: str = DEFAULT_PARTICULARS,
    ) -> None:
        self.reconstructor = reconstructor or BalanceReconstructor()
        self.fallback_particulars = fallback_particulars

    def statement(
        self,
        account: Account,
        transactions: TransactionSource,
        start_date: DateLike,
        end_date: DateLike,
    ) -> LedgerStatement:
        """Statement of an account for ``[start_date, end_date]``.

        Args:
            account: Account with its live balance.
            transactions: Transactions referencing the account, or any
                superset (or an index); lines of other accounts are ignored.
            start_date: First date of the statement (inclusive).
            end_date: Last date of the statement (inclusive).

        Returns:
            The statement. Same-date transactions keep their input order.
        """
        start = to_date_key(start_date)
        end = to_date_key(end_date)
        policy = self.reconstructor.line_policy
        candidates = [
            tx for tx in transactions_for(transactions, account.name) if tx.references(account.name)
        ]

        closing = self.reconstructor.as_of(account.signed_balance, candidates, end, account.name)

        in_period = [tx for tx in candidates if start <= tx.date <= end]

        opening = closing
        for transaction in sorted(in_period, key=lambda tx: tx.date, reverse=True):
            opening -= signed_delta(transaction, account.name, policy)

        result = LedgerStatement(
            account=account.name,
            start_date=start,
            end_date=end,
            opening_balance=opening,
            closing_balance=closing,
        )
        running = opening
        for transaction in sorted(in_period, key=lambda tx: tx.date):
            lines = matching_lines(transaction, account.name, policy)
            debit = sum((line.debit for line in lines), ZERO)
            credit = sum((line.credit for line in lines), ZERO)
            running += debit - credit
            result.rows.append(
                StatementRow(
                    date=transaction.date,
                    transaction_id=transaction.id,
                    number=transaction.number,
                    transaction_type=transaction.type,
                    particulars=contra_particulars(
                        transaction, account.name, self.fallback_particulars
                    ),
                    debit=debit,
                    credit=credit,
                    running_balance=running,
                )
            )
            result.total_debit += debit
            result.total_credit += credit

        logger.debug(
            "Statement for %r %s..%s: %d rows, opening %s, closing %s",
            account.name,
            start,
            end,
            len(result.rows),
            opening,
            closing,
        )
        return result
