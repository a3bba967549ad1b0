"""Point-in-time balance reconstruction.

Accounts store only their live balance. A historical balance is recovered by
undoing every transaction dated after the cutoff:

    current = as_of(cutoff) + sum(deltas of transactions dated after cutoff)

so ``as_of(cutoff) = current - sum(future deltas)``. Transactions dated on the
cutoff itself are already part of the as-of balance and are not undone.

All balances are signed numbers, positive for debit and negative for credit.
Conversion to a (magnitude, direction) pair happens only at the edges.

Example:
    Cash stood at 1,000 Dr after a 200 debit dated 2024-06-01::

        reconstructor = BalanceReconstructor()
        reconstructor.as_of(Decimal("1000"), transactions, "2024-05-01", "Cash")
        # Decimal('800')
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .decimal_utils import ZERO, to_decimal
from .models import LedgerLine, LinePolicy, Transaction, to_date_key

logger = logging.getLogger(__name__)

DateLike = Union[str, date]


class TransactionIndex:
    """Account name to transactions lookup, built once per snapshot.

    Filtering the whole transaction list for every account makes a group
    report O(accounts x transactions). Building this index once and passing
    it wherever a transaction sequence is accepted reduces each account's
    work to the transactions that actually mention it.

    Attributes:
        transactions: The indexed snapshot, in input order.
    """

    def __init__(self, transactions: Iterable[Transaction]) -> None:
        self.transactions: Tuple[Transaction, ...] = tuple(transactions)
        by_account: Dict[str, List[Transaction]] = defaultdict(list)
        by_item: Dict[str, List[Transaction]] = defaultdict(list)
        for transaction in self.transactions:
            for account in transaction.accounts():
                by_account[account].append(transaction)
            for item in transaction.items():
                by_item[item].append(transaction)
        self._by_account = {k: tuple(v) for k, v in by_account.items()}
        self._by_item = {k: tuple(v) for k, v in by_item.items()}

    def for_account(self, account: str) -> Tuple[Transaction, ...]:
        return self._by_account.get(account, ())

    def for_item(self, item: str) -> Tuple[Transaction, ...]:
        return self._by_item.get(item, ())

    def accounts(self) -> Tuple[str, ...]:
        """Every account name referenced by at least one line."""
        return tuple(self._by_account)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self.transactions)

    def __len__(self) -> int:
        return len(self.transactions)

    def __repr__(self) -> str:
        return f"TransactionIndex(transactions={len(self)}, accounts={len(self._by_account)})"


TransactionSource = Union[Iterable[Transaction], TransactionIndex]


def transactions_for(source: TransactionSource, account: str) -> Iterable[Transaction]:
    """Narrow a transaction source to the candidates for one account."""
    if isinstance(source, TransactionIndex):
        return source.for_account(account)
    return source


def matching_lines(
    transaction: Transaction, account: str, policy: LinePolicy = LinePolicy.SUM
) -> List[LedgerLine]:
    """Ledger lines of a transaction that post to an account.

    Args:
        transaction: Transaction to inspect.
        account: Account name to match.
        policy: With ``LinePolicy.FIRST`` at most one line is returned.
    """
    lines = [line for line in transaction.ledger_lines() if line.account == account]
    if policy is LinePolicy.FIRST:
        return lines[:1]
    return lines


def signed_delta(
    transaction: Transaction, account: str, policy: LinePolicy = LinePolicy.SUM
) -> Decimal:
    """Net Dr-positive effect of a transaction on an account."""
    return sum((line.signed_amount for line in matching_lines(transaction, account, policy)), ZERO)


class BalanceReconstructor:
    """Computes historical balances from a live balance.

    The reconstructor holds no state between calls; the same arguments always
    produce the same result.

    Attributes:
        line_policy: Treatment of several lines against one account in a
            single transaction.
    """

    def __init__(self, line_policy: LinePolicy = LinePolicy.SUM) -> None:
        self.line_policy = LinePolicy(line_policy)

    def future_delta(
        self, transactions: TransactionSource, cutoff_date: DateLike, account: str
    ) -> Decimal:
        """Sum of the account's deltas in transactions dated after the cutoff.

        Args:
            transactions: Transactions (or an index) to scan.
            cutoff_date: Inclusive cutoff; same-day transactions are excluded.
            account: Account name whose lines are summed.

        Returns:
            Dr-positive sum of the later deltas.
        """
        cutoff = to_date_key(cutoff_date)
        total = ZERO
        for transaction in transactions_for(transactions, account):
            if transaction.date > cutoff:
                total += signed_delta(transaction, account, self.line_policy)
        return total

    def as_of(
        self,
        current_signed_balance: Union[Decimal, float, int, str],
        transactions: TransactionSource,
        cutoff_date: DateLike,
        account: str,
    ) -> Decimal:
        """Balance of an account as it stood at the end of ``cutoff_date``.

        Args:
            current_signed_balance: Live signed balance (Dr positive).
            transactions: Transaction history, or an index over it. Lines for
                other accounts are ignored.
            cutoff_date: Date to reconstruct; activity on this date counts.
            account: Account name the balance belongs to.

        Returns:
            Signed balance as of the cutoff. With no later transactions this
            is the current balance unchanged.

        Example:
            >>> reconstructor.as_of(Decimal("1000"), [later_cash_debit], "2024-05-01", "Cash")
            Decimal('800')
        """
        return to_decimal(current_signed_balance) - self.future_delta(
            transactions, cutoff_date, account
        )

    def replay(
        self,
        opening_signed_balance: Union[Decimal, float, int, str],
        transactions: TransactionSource,
        account: str,
        through_date: Optional[DateLike] = None,
    ) -> Decimal:
        """Balance obtained by replaying history forward from an opening.

        This is the inverse of :meth:`as_of` and is what integrity checks use
        to detect live balances edited outside of transactions.

        Args:
            opening_signed_balance: Balance before the first transaction.
            transactions: Transaction history, or an index over it.
            account: Account name to replay.
            through_date: Optional inclusive last date to apply.

        Returns:
            Signed balance after applying every (or every dated) delta.
        """
        through = to_date_key(through_date) if through_date is not None else None
        total = to_decimal(opening_signed_balance)
        for transaction in transactions_for(transactions, account):
            if through is not None and transaction.date > through:
                continue
            total += signed_delta(transaction, account, self.line_policy)
        return total

    def __repr__(self) -> str:
        return f"BalanceReconstructor(line_policy={self.line_policy.value!r})"
