"""Report tables as pandas DataFrames.

Each builder collects ``(label, ..., type)`` rows and turns them into a
DataFrame in one go. The ``Type`` column marks structural rows
(``section``, ``group``, ``account``, ``subtotal``, ``total``) so renderers
can style them without parsing labels.

Amounts stay :class:`decimal.Decimal` (object dtype); convert with
``df[col].astype(float)`` only for plotting.
"""

from datetime import date, timedelta
from decimal import Decimal
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from .aggregation import GroupAggregator, GroupSummary, Scope
from .decimal_utils import ZERO, is_zero
from .models import Account, NaturalClass, StockItem, to_date_key
from .ratios import RatioResult
from .reconstruction import DateLike, TransactionIndex, TransactionSource
from .statement import LedgerStatement
from .stock import StockValuationReconciler

logger = logging.getLogger(__name__)

PROFIT_AND_LOSS_ACCOUNT = "Profit & Loss A/c"

Row = Tuple[Union[str, Decimal], ...]


def _day_before(value: DateLike) -> str:
    return (date.fromisoformat(to_date_key(value)) - timedelta(days=1)).isoformat()


def _debit_credit(signed: Decimal) -> Tuple[Decimal, Decimal]:
    if signed >= ZERO:
        return signed, ZERO
    return ZERO, -signed


class ReportBuilder:
    """Builds trial balance, balance sheet and profit and loss tables.

    Attributes:
        aggregator: Group aggregator of the open company
        stock_reconciler: Used for the stock summary
    """

    def __init__(
        self,
        aggregator: GroupAggregator,
        stock_reconciler: Optional[StockValuationReconciler] = None,
    ) -> None:
        self.aggregator = aggregator
        self.stock_reconciler = stock_reconciler or StockValuationReconciler()

    def _retained_profit(
        self, accounts: List[Account], transactions: TransactionSource, as_on_date: DateLike
    ) -> Decimal:
        """Cumulative income less expenses at the end of ``as_on_date``."""
        scope = Scope.as_on(as_on_date)
        income = self.aggregator.summarize(accounts, scope, NaturalClass.INCOME, transactions)
        expenses = self.aggregator.summarize(accounts, scope, NaturalClass.EXPENSES, transactions)
        return self.aggregator.grand_total(income) - self.aggregator.grand_total(expenses)

    def trial_balance(
        self,
        accounts: Iterable[Account],
        transactions: TransactionSource,
        end_date: DateLike,
        start_date: Optional[DateLike] = None,
    ) -> pd.DataFrame:
        """Trial balance with Dr/Cr columns.

        Balance-sheet accounts show their balance as on ``end_date``. With a
        ``start_date``, income and expense accounts show their movement for
        the period and the profit retained from earlier periods is shown as a
        :data:`PROFIT_AND_LOSS_ACCOUNT` line; without one, every account shows
        its balance as on ``end_date``.

        Args:
            accounts: Account snapshot.
            transactions: Transaction snapshot (or index).
            end_date: Last date of the trial balance.
            start_date: Optional first date of the profit period.

        Returns:
            DataFrame with columns Particulars, Group, Debit, Credit, Type.
            The last row is the grand total; a difference row precedes it
            when the books do not balance. ``df.attrs["difference"]`` holds
            debit total minus credit total.
        """
        accounts = list(accounts)
        index = transactions if isinstance(transactions, TransactionIndex) else TransactionIndex(transactions)
        balance_scope = Scope.as_on(end_date)
        flow_scope = Scope.period(start_date, end_date) if start_date is not None else balance_scope

        rows: List[Row] = []
        total_debit = total_credit = ZERO
        for natural_class in NaturalClass:
            scope = balance_scope if natural_class.is_balance_sheet else flow_scope
            for summary in self.aggregator.summarize(accounts, scope, natural_class, index):
                for balance in summary.accounts:
                    if balance.signed_balance == ZERO:
                        continue
                    rows.append(
                        (balance.name, summary.group_name, balance.debit, balance.credit, "account")
                    )
                    total_debit += balance.debit
                    total_credit += balance.credit

        if start_date is not None:
            retained = self._retained_profit(accounts, index, _day_before(start_date))
            if retained != ZERO:
                # Profit is a credit, loss a debit
                debit, credit = _debit_credit(-retained)
                rows.append((PROFIT_AND_LOSS_ACCOUNT, "", debit, credit, "account"))
                total_debit += debit
                total_credit += credit

        difference = total_debit - total_credit
        if not is_zero(difference):
            logger.warning("Trial balance as on %s differs by %s", to_date_key(end_date), difference)
            debit, credit = _debit_credit(-difference)
            rows.append(("Difference in Trial Balance", "", debit, credit, "subtotal"))
        rows.append(("Grand Total", "", total_debit, total_credit, "total"))

        df = pd.DataFrame(rows, columns=["Particulars", "Group", "Debit", "Credit", "Type"])
        df.attrs["difference"] = difference
        return df

    def _section(
        self, rows: List[Row], title: str, summaries: List[GroupSummary]
    ) -> Decimal:
        rows.append((title, "", "section"))
        for summary in summaries:
            if not summary.accounts:
                continue
            rows.append((f"  {summary.group_name}", summary.total, "group"))
            for balance in summary.accounts:
                rows.append(
                    (f"    {balance.name}", summary.natural_class.orient(balance.signed_balance), "account")
                )
        return self.aggregator.grand_total(summaries)

    def balance_sheet(
        self,
        accounts: Iterable[Account],
        transactions: TransactionSource,
        as_on_date: DateLike,
    ) -> pd.DataFrame:
        """Balance sheet as on a date.

        Cumulative income less expenses is carried to the liabilities side as
        :data:`PROFIT_AND_LOSS_ACCOUNT`, so the two totals agree whenever the
        books balance.

        Returns:
            DataFrame with columns Item, Amount, Type. ``df.attrs`` holds
            ``total_assets``, ``total_liabilities`` and ``is_balanced``.
        """
        accounts = list(accounts)
        index = transactions if isinstance(transactions, TransactionIndex) else TransactionIndex(transactions)
        scope = Scope.as_on(as_on_date)

        rows: List[Row] = []
        total_liabilities = self._section(
            rows,
            "LIABILITIES",
            self.aggregator.summarize(accounts, scope, NaturalClass.LIABILITIES, index),
        )
        retained = self._retained_profit(accounts, index, as_on_date)
        rows.append((f"  {PROFIT_AND_LOSS_ACCOUNT}", retained, "group"))
        total_liabilities += retained
        rows.append(("TOTAL LIABILITIES", total_liabilities, "total"))

        total_assets = self._section(
            rows,
            "ASSETS",
            self.aggregator.summarize(accounts, scope, NaturalClass.ASSETS, index),
        )
        rows.append(("TOTAL ASSETS", total_assets, "total"))

        df = pd.DataFrame(rows, columns=["Item", "Amount", "Type"])
        df.attrs["total_assets"] = total_assets
        df.attrs["total_liabilities"] = total_liabilities
        df.attrs["is_balanced"] = is_zero(total_assets - total_liabilities)
        return df

    def profit_and_loss(
        self,
        accounts: Iterable[Account],
        transactions: TransactionSource,
        start_date: DateLike,
        end_date: DateLike,
    ) -> pd.DataFrame:
        """Income and expenses for a period with the net result.

        Returns:
            DataFrame with columns Item, Amount, Type; the last row is
            "Net Profit" or "Net Loss" (shown as a positive amount).
            ``df.attrs["net_profit"]`` is signed, negative for a loss.
        """
        accounts = list(accounts)
        index = transactions if isinstance(transactions, TransactionIndex) else TransactionIndex(transactions)
        scope = Scope.period(start_date, end_date)

        rows: List[Row] = []
        income = self._section(
            rows, "INCOME", self.aggregator.summarize(accounts, scope, NaturalClass.INCOME, index)
        )
        rows.append(("Total Income", income, "subtotal"))
        expenses = self._section(
            rows, "EXPENSES", self.aggregator.summarize(accounts, scope, NaturalClass.EXPENSES, index)
        )
        rows.append(("Total Expenses", expenses, "subtotal"))

        net_profit = income - expenses
        rows.append(("Net Profit" if net_profit >= ZERO else "Net Loss", abs(net_profit), "total"))

        df = pd.DataFrame(rows, columns=["Item", "Amount", "Type"])
        df.attrs["net_profit"] = net_profit
        return df

    @staticmethod
    def ledger_statement_frame(statement: LedgerStatement) -> pd.DataFrame:
        """Statement rows framed by opening and closing balance rows."""
        columns = ["Date", "Voucher No", "Type", "Particulars", "Debit", "Credit", "Balance", "Dr/Cr"]
        rows: List[Row] = [
            (
                statement.start_date,
                "",
                "",
                "Opening Balance",
                ZERO,
                ZERO,
                abs(statement.opening_balance),
                statement.opening_direction.value,
            )
        ]
        for row in statement.rows:
            rows.append(
                (
                    row.date,
                    row.number,
                    row.transaction_type,
                    row.particulars,
                    row.debit,
                    row.credit,
                    row.balance,
                    row.direction.value,
                )
            )
        rows.append(
            (
                statement.end_date,
                "",
                "",
                "Closing Balance",
                statement.total_debit,
                statement.total_credit,
                abs(statement.closing_balance),
                statement.closing_direction.value,
            )
        )
        return pd.DataFrame(rows, columns=columns)

    def stock_summary(
        self,
        items: Iterable[StockItem],
        transactions: TransactionSource,
        start_date: DateLike,
        end_date: DateLike,
    ) -> pd.DataFrame:
        """Opening, inward, outward and closing stock of every item."""
        index = transactions if isinstance(transactions, TransactionIndex) else TransactionIndex(transactions)
        records = []
        for item in items:
            position = self.stock_reconciler.position(item, index, start_date, end_date)
            records.append(
                {
                    "Item": position.item_name,
                    "Unit": position.unit or "",
                    "Opening Qty": position.opening_quantity,
                    "Opening Value": position.opening_value,
                    "Inward Qty": position.inward_quantity,
                    "Inward Value": position.inward_value,
                    "Outward Qty": position.outward_quantity,
                    "Outward Value": position.outward_value,
                    "Closing Qty": position.closing_quantity,
                    "Closing Value": position.closing_value,
                }
            )
        df = pd.DataFrame(
            records,
            columns=[
                "Item",
                "Unit",
                "Opening Qty",
                "Opening Value",
                "Inward Qty",
                "Inward Value",
                "Outward Qty",
                "Outward Value",
                "Closing Qty",
                "Closing Value",
            ],
        )
        df.attrs["total_closing_value"] = sum(df["Closing Value"], ZERO)
        return df

    @staticmethod
    def ratio_table(ratios: Mapping[str, RatioResult]) -> pd.DataFrame:
        """Ratio analysis with display values and benchmarks."""
        return pd.DataFrame(
            [(r.name, r.display, r.target) for r in ratios.values()],
            columns=["Ratio", "Value", "Target"],
        )


def summaries_frame(summaries: Dict[NaturalClass, List[GroupSummary]]) -> pd.DataFrame:
    """Flat group totals of every class, one row per group."""
    return pd.DataFrame(
        [
            (natural_class.value, summary.group_name, summary.total, len(summary.accounts))
            for natural_class, class_summaries in summaries.items()
            for summary in class_summaries
        ],
        columns=["Class", "Group", "Total", "Accounts"],
    )
