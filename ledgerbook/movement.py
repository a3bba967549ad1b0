"""Period movement through an account.

Income and expense accounts are flows: their meaningful figure for a report
is what moved through them during the period, not a balance carried across
periods. Applying balance semantics to a flow account folds earlier years'
profit into this year's, so flows get their own calculator.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .decimal_utils import ZERO
from .models import LinePolicy, NaturalClass, to_date_key
from .reconstruction import DateLike, TransactionSource, matching_lines, transactions_for


@dataclass(frozen=True)
class PeriodMovement:
    """Debit and credit activity of one account within a date window.

    Attributes:
        account: Account name
        natural_class: Natural class used to orient the movement, if known
        start_date: First date of the window (inclusive)
        end_date: Last date of the window (inclusive)
        debit_total: Sum of debit lines in the window
        credit_total: Sum of credit lines in the window
    """

    account: str
    natural_class: Optional[NaturalClass]
    start_date: str
    end_date: str
    debit_total: Decimal = ZERO
    credit_total: Decimal = ZERO

    @property
    def signed(self) -> Decimal:
        """Net movement, positive for debit."""
        return self.debit_total - self.credit_total

    @property
    def oriented(self) -> Decimal:
        """Net movement, positive in the natural direction of the class."""
        if self.natural_class is None:
            return self.signed
        return self.natural_class.orient(self.signed)


class PeriodMovementCalculator:
    """Sums an account's line deltas over an inclusive date range."""

    def __init__(self, line_policy: LinePolicy = LinePolicy.SUM) -> None:
        self.line_policy = LinePolicy(line_policy)

    def breakdown(
        self,
        transactions: TransactionSource,
        account: str,
        natural_class: Optional[NaturalClass],
        start_date: DateLike,
        end_date: DateLike,
    ) -> PeriodMovement:
        """Debit and credit totals of an account within ``[start, end]``.

        A window whose start is after its end is empty, not an error.
        """
        start = to_date_key(start_date)
        end = to_date_key(end_date)
        debit_total = ZERO
        credit_total = ZERO
        for transaction in transactions_for(transactions, account):
            if not start <= transaction.date <= end:
                continue
            for line in matching_lines(transaction, account, self.line_policy):
                debit_total += line.debit
                credit_total += line.credit
        return PeriodMovement(
            account=account,
            natural_class=natural_class,
            start_date=start,
            end_date=end,
            debit_total=debit_total,
            credit_total=credit_total,
        )

    def movement(
        self,
        transactions: TransactionSource,
        account: str,
        natural_class: Optional[NaturalClass],
        start_date: DateLike,
        end_date: DateLike,
    ) -> Decimal:
        """Net Dr-positive movement of an account within ``[start, end]``.

        Unlike :meth:`BalanceReconstructor.as_of` there is no starting
        balance: the result is the pure sum over the window.

        Args:
            transactions: Transactions (or an index) to scan.
            account: Account name.
            natural_class: Class of the account's group; carried on the
                breakdown so callers can orient it, the signed result does
                not depend on it.
            start_date: First date of the window (inclusive).
            end_date: Last date of the window (inclusive).

        Returns:
            Signed movement (debits minus credits).
        """
        return self.breakdown(transactions, account, natural_class, start_date, end_date).signed
