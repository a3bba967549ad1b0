"""Integrity checks for a company's books.

Historical reconstruction trusts that every live balance is the result of
its transactions. These checks verify that trust:

- **Reconciliation**: replay each account from a known opening balance and
  compare the result with the stored live balance. A mismatch means the
  balance was edited outside of transactions, and every as-on figure before
  the edit is off by the difference.
- **Orphan lines**: ledger lines naming an account that does not exist. They
  contribute nothing to any group total.
- **Unbalanced transactions**: debits not equal to credits. A single one
  breaks the accounting identity of every report that includes it.
- **Duplicate account lines**: several lines against one account in one
  transaction. Harmless under the default line policy, but they change the
  result under the legacy "first line only" policy.

Example:
    Run every check and fail loudly::

        report = check_integrity(accounts, transactions, openings)
        report.raise_for_issues()
"""

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
import logging
from typing import Iterable, List, Mapping, Optional
import warnings

from ._warnings import DataQualityWarning, ReconciliationWarning
from .decimal_utils import ZERO, Numeric, is_zero, to_decimal
from .exceptions import ReconciliationError
from .models import Account, Transaction
from .reconstruction import BalanceReconstructor, TransactionIndex, TransactionSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationResult:
    """Replay of one account compared with its live balance.

    Attributes:
        account: Account name
        opening_balance: Signed balance before the first transaction
        expected_balance: Opening plus every transaction delta
        live_balance: Stored signed balance
    """

    account: str
    opening_balance: Decimal
    expected_balance: Decimal
    live_balance: Decimal

    @property
    def difference(self) -> Decimal:
        """Live minus expected; the amount edited outside of transactions."""
        return self.live_balance - self.expected_balance

    @property
    def is_reconciled(self) -> bool:
        return is_zero(self.difference)


@dataclass(frozen=True)
class OrphanLine:
    """A ledger line that names an unknown account."""

    transaction_id: str
    date: str
    account: str
    line_index: int


@dataclass(frozen=True)
class UnbalancedTransaction:
    """A transaction whose debits and credits differ."""

    transaction_id: str
    date: str
    total_debit: Decimal
    total_credit: Decimal

    @property
    def difference(self) -> Decimal:
        return self.total_debit - self.total_credit


@dataclass(frozen=True)
class DuplicateAccountLine:
    """An account posted to more than once within one transaction."""

    transaction_id: str
    account: str
    count: int


@dataclass
class IntegrityReport:
    """Findings of :func:`check_integrity`.

    Duplicate account lines are reported but are not issues on their own;
    they only matter under the legacy line policy.
    """

    reconciliation: List[ReconciliationResult] = field(default_factory=list)
    orphan_lines: List[OrphanLine] = field(default_factory=list)
    unbalanced_transactions: List[UnbalancedTransaction] = field(default_factory=list)
    duplicate_account_lines: List[DuplicateAccountLine] = field(default_factory=list)

    @property
    def drifted_accounts(self) -> List[ReconciliationResult]:
        return [r for r in self.reconciliation if not r.is_reconciled]

    def issues(self) -> List[str]:
        """Human-readable description of every issue found."""
        messages = [
            f"Account '{r.account}' live balance {r.live_balance} differs from "
            f"replayed balance {r.expected_balance} by {r.difference}"
            for r in self.drifted_accounts
        ]
        messages.extend(
            f"Transaction {o.transaction_id} ({o.date}) line {o.line_index} "
            f"posts to unknown account '{o.account}'"
            for o in self.orphan_lines
        )
        messages.extend(
            f"Transaction {u.transaction_id} ({u.date}) is unbalanced: "
            f"debit {u.total_debit}, credit {u.total_credit}"
            for u in self.unbalanced_transactions
        )
        return messages

    @property
    def is_clean(self) -> bool:
        return not self.issues()

    def raise_for_issues(self) -> None:
        """Raise :class:`ReconciliationError` if any issue was found."""
        issues = self.issues()
        if issues:
            raise ReconciliationError(issues)


def reconcile_account(
    account: Account,
    opening_balance: Numeric,
    transactions: TransactionSource,
    reconstructor: Optional[BalanceReconstructor] = None,
) -> ReconciliationResult:
    """Replay one account from its opening balance.

    Args:
        account: Account with its live balance.
        opening_balance: Signed (Dr-positive) balance before any transaction.
        transactions: Full transaction history, or an index over it.
        reconstructor: Supplies the line policy; defaults to summing lines.
    """
    reconstructor = reconstructor or BalanceReconstructor()
    opening = to_decimal(opening_balance)
    expected = reconstructor.replay(opening, transactions, account.name)
    return ReconciliationResult(
        account=account.name,
        opening_balance=opening,
        expected_balance=expected,
        live_balance=account.signed_balance,
    )


def reconcile_accounts(
    accounts: Iterable[Account],
    opening_balances: Optional[Mapping[str, Numeric]],
    transactions: TransactionSource,
    reconstructor: Optional[BalanceReconstructor] = None,
) -> List[ReconciliationResult]:
    """Replay every account and warn about those that drifted.

    Accounts missing from ``opening_balances`` are assumed to have opened at
    zero.

    Warns:
        ReconciliationWarning: Once per account whose live balance disagrees
            with its replay.
    """
    opening_balances = opening_balances or {}
    if not isinstance(transactions, TransactionIndex):
        transactions = TransactionIndex(transactions)
    results = []
    for account in accounts:
        result = reconcile_account(
            account, opening_balances.get(account.name, ZERO), transactions, reconstructor
        )
        if not result.is_reconciled:
            logger.warning(
                "Account %r does not reconcile: live %s, replayed %s",
                account.name,
                result.live_balance,
                result.expected_balance,
            )
            warnings.warn(
                f"Account '{account.name}' is off by {result.difference} against its "
                f"transaction history",
                ReconciliationWarning,
                stacklevel=2,
            )
        results.append(result)
    return results


def find_orphan_lines(
    accounts: Iterable[Account], transactions: Iterable[Transaction]
) -> List[OrphanLine]:
    """Ledger lines whose account is not in ``accounts``."""
    known = {account.name for account in accounts}
    orphans = []
    for transaction in transactions:
        for index, line in enumerate(transaction.ledger_lines()):
            if line.account not in known:
                orphans.append(OrphanLine(transaction.id, transaction.date, line.account, index))
    return orphans


def find_unbalanced_transactions(
    transactions: Iterable[Transaction],
) -> List[UnbalancedTransaction]:
    """Transactions whose debit total differs from their credit total."""
    return [
        UnbalancedTransaction(tx.id, tx.date, tx.total_debit, tx.total_credit)
        for tx in transactions
        if not tx.is_balanced
    ]


def find_duplicate_account_lines(
    transactions: Iterable[Transaction],
) -> List[DuplicateAccountLine]:
    """Accounts that appear on more than one line of the same transaction."""
    duplicates = []
    for transaction in transactions:
        counts = Counter(line.account for line in transaction.ledger_lines())
        duplicates.extend(
            DuplicateAccountLine(transaction.id, account, count)
            for account, count in counts.items()
            if count > 1
        )
    return duplicates


def check_integrity(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    opening_balances: Optional[Mapping[str, Numeric]] = None,
    reconstructor: Optional[BalanceReconstructor] = None,
) -> IntegrityReport:
    """Run every integrity check over one snapshot.

    Args:
        accounts: Account snapshot.
        transactions: Transaction snapshot.
        opening_balances: Signed opening balances by account name. When
            omitted, reconciliation is skipped: without openings a replay
            cannot tell drift from an opening balance.
        reconstructor: Supplies the line policy for reconciliation.

    Returns:
        The report. Nothing is raised; call
        :meth:`IntegrityReport.raise_for_issues` to enforce it.

    Warns:
        DataQualityWarning: When orphan or duplicate account lines exist.
        ReconciliationWarning: Per drifted account (see :func:`reconcile_accounts`).
    """
    accounts = list(accounts)
    index = TransactionIndex(transactions)

    report = IntegrityReport(
        orphan_lines=find_orphan_lines(accounts, index),
        unbalanced_transactions=find_unbalanced_transactions(index),
        duplicate_account_lines=find_duplicate_account_lines(index),
    )
    if opening_balances is not None:
        report.reconciliation = reconcile_accounts(
            accounts, opening_balances, index, reconstructor
        )

    if report.orphan_lines:
        warnings.warn(
            f"{len(report.orphan_lines)} transaction lines post to unknown accounts",
            DataQualityWarning,
            stacklevel=2,
        )
    if report.duplicate_account_lines:
        warnings.warn(
            f"{len(report.duplicate_account_lines)} transactions post to the same "
            f"account on several lines",
            DataQualityWarning,
            stacklevel=2,
        )
    for transaction in report.unbalanced_transactions:
        logger.warning(
            "Transaction %s is unbalanced by %s", transaction.transaction_id, transaction.difference
        )

    logger.info(
        "Integrity check: %d transactions, %d issues", len(index), len(report.issues())
    )
    return report
