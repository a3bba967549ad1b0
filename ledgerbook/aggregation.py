"""Group aggregation for balance-sheet, trial-balance and ratio views.

Each account's value is resolved for a :class:`Scope` (live balance,
reconstructed as-on balance, or period movement) and summed into its group.
Group totals are oriented to the group's natural direction, so a
credit-normal group such as "Sales Accounts" reports credits as positive.

Accounts in groups the classifier does not know are summarised under the
fallback class; dropping them would break the accounting identity that the
trial balance validates.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .classifier import AccountClassifier
from .decimal_utils import ZERO, is_zero
from .models import Account, Direction, NaturalClass, to_date_key
from .movement import PeriodMovementCalculator
from .reconstruction import BalanceReconstructor, DateLike, TransactionIndex, TransactionSource

logger = logging.getLogger(__name__)


class ScopeKind(Enum):
    """Which figure of an account a report asks for."""

    CURRENT = "current"
    AS_ON = "as_on"
    PERIOD = "period"


@dataclass(frozen=True)
class Scope:
    """The point in time or window an aggregation is computed for.

    Use the constructors rather than building instances directly::

        Scope.current()
        Scope.as_on("2024-03-31")
        Scope.period("2023-04-01", "2024-03-31")
    """

    kind: ScopeKind
    date: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @classmethod
    def current(cls) -> "Scope":
        return cls(ScopeKind.CURRENT)

    @classmethod
    def as_on(cls, as_on_date: DateLike) -> "Scope":
        return cls(ScopeKind.AS_ON, date=to_date_key(as_on_date))

    @classmethod
    def period(cls, start_date: DateLike, end_date: DateLike) -> "Scope":
        return cls(ScopeKind.PERIOD, start_date=to_date_key(start_date), end_date=to_date_key(end_date))

    @property
    def needs_transactions(self) -> bool:
        return self.kind is not ScopeKind.CURRENT

    def describe(self) -> str:
        if self.kind is ScopeKind.AS_ON:
            return f"as on {self.date}"
        if self.kind is ScopeKind.PERIOD:
            return f"{self.start_date} to {self.end_date}"
        return "current"


@dataclass(frozen=True)
class AccountBalance:
    """One account's figure within a scope, for drill-down tables.

    Attributes:
        name: Account name
        group: Group the account was summarised under
        category: Account category, if any
        signed_balance: Figure for the scope, positive for debit
    """

    name: str
    group: str
    category: Optional[str]
    signed_balance: Decimal

    @property
    def magnitude(self) -> Decimal:
        return abs(self.signed_balance)

    @property
    def direction(self) -> Direction:
        return Direction.of(self.signed_balance)

    @property
    def debit(self) -> Decimal:
        return self.magnitude if self.direction is Direction.DEBIT else ZERO

    @property
    def credit(self) -> Decimal:
        return self.magnitude if self.direction is Direction.CREDIT else ZERO


@dataclass
class GroupSummary:
    """Total of one group and its member accounts.

    Attributes:
        group_name: Group name
        natural_class: Class the group was classified as
        total: Sum of member figures, positive in the natural direction
        accounts: Member accounts with their figures for the scope
    """

    group_name: str
    natural_class: NaturalClass
    total: Decimal = ZERO
    accounts: List[AccountBalance] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when neither the total nor any member carries a figure."""
        return self.total == ZERO and all(a.signed_balance == ZERO for a in self.accounts)


class GroupAggregator:
    """Sums account figures into groups for a scope.

    Attributes:
        classifier: Group classification of the open company
        reconstructor: Calculator used for as-on scopes
        movement_calculator: Calculator used for period scopes
    """

    def __init__(
        self,
        classifier: AccountClassifier,
        reconstructor: Optional[BalanceReconstructor] = None,
        movement_calculator: Optional[PeriodMovementCalculator] = None,
    ) -> None:
        self.classifier = classifier
        self.reconstructor = reconstructor or BalanceReconstructor()
        self.movement_calculator = movement_calculator or PeriodMovementCalculator(
            self.reconstructor.line_policy
        )

    def account_value(
        self, account: Account, scope: Scope, transactions: TransactionSource = ()
    ) -> Decimal:
        """Signed (Dr-positive) figure of one account for a scope."""
        if scope.kind is ScopeKind.AS_ON:
            return self.reconstructor.as_of(
                account.signed_balance, transactions, scope.date, account.name
            )
        if scope.kind is ScopeKind.PERIOD:
            return self.movement_calculator.movement(
                transactions,
                account.name,
                self.classifier.classify(account.group),
                scope.start_date,
                scope.end_date,
            )
        return account.signed_balance

    def _group_order(self, accounts: Sequence[Account], natural_class: NaturalClass) -> List[str]:
        groups = self.classifier.ordered_groups(natural_class)
        for account in accounts:
            if account.group in groups or self.classifier.is_registered(account.group):
                continue
            if self.classifier.classify(account.group) is natural_class:
                groups.append(account.group)
        return groups

    @staticmethod
    def _index(transactions: TransactionSource, scope: Scope) -> TransactionSource:
        if not scope.needs_transactions or isinstance(transactions, TransactionIndex):
            return transactions
        return TransactionIndex(transactions)

    def summarize(
        self,
        accounts: Iterable[Account],
        scope: Scope,
        natural_class: NaturalClass,
        transactions: TransactionSource = (),
    ) -> List[GroupSummary]:
        """Group summaries of one natural class for a scope.

        Args:
            accounts: Account snapshot; it is not modified.
            scope: Current, as-on or period scope.
            natural_class: Class whose groups are summarised.
            transactions: Transaction snapshot (or index); needed for as-on
                and period scopes.

        Returns:
            One summary per group of the class, built-in groups first, then
            registered groups, then unregistered groups that fell back to
            this class. Groups without accounts are included with a zero
            total.
        """
        accounts = list(accounts)
        transactions = self._index(transactions, scope)
        summaries = {
            group: GroupSummary(group_name=group, natural_class=natural_class)
            for group in self._group_order(accounts, natural_class)
        }
        for account in accounts:
            summary = summaries.get(account.group)
            if summary is None:
                continue
            value = self.account_value(account, scope, transactions)
            summary.accounts.append(
                AccountBalance(
                    name=account.name,
                    group=account.group,
                    category=account.category,
                    signed_balance=value,
                )
            )
            summary.total += natural_class.orient(value)

        logger.debug(
            "Summarised %d %s groups %s", len(summaries), natural_class.value, scope.describe()
        )
        return list(summaries.values())

    def summarize_all(
        self,
        accounts: Iterable[Account],
        scope: Scope,
        transactions: TransactionSource = (),
    ) -> Dict[NaturalClass, List[GroupSummary]]:
        """Group summaries of every natural class for one scope."""
        accounts = list(accounts)
        transactions = self._index(transactions, scope)
        return {
            natural_class: self.summarize(accounts, scope, natural_class, transactions)
            for natural_class in NaturalClass
        }

    @staticmethod
    def grand_total(summaries: Iterable[GroupSummary]) -> Decimal:
        """Sum of group totals."""
        return sum((summary.total for summary in summaries), ZERO)

    def check_identity(
        self,
        accounts: Iterable[Account],
        scope: Scope,
        transactions: TransactionSource = (),
    ) -> Tuple[bool, Decimal]:
        """Verify assets + expenses == liabilities + income for a scope.

        The identity holds whenever every transaction's debits equal its
        credits and the live balances were produced by those transactions.

        Returns:
            Tuple of (is_balanced, difference) where difference is the debit
            side minus the credit side.

        Example:
            Check the book as on the year end::

                balanced, diff = aggregator.check_identity(
                    accounts, Scope.as_on("2024-03-31"), transactions
                )
        """
        totals = {
            natural_class: self.grand_total(summaries)
            for natural_class, summaries in self.summarize_all(accounts, scope, transactions).items()
        }
        debit_side = totals[NaturalClass.ASSETS] + totals[NaturalClass.EXPENSES]
        credit_side = totals[NaturalClass.LIABILITIES] + totals[NaturalClass.INCOME]
        difference = debit_side - credit_side
        balanced = is_zero(difference)
        if not balanced:
            logger.warning("Book out of balance %s by %s", scope.describe(), difference)
        return balanced, difference
