"""Liquidity and profitability ratios built on group aggregation.

Ratios divide one aggregate by another, and a new or dormant company has
zero liabilities or zero revenue. Every ratio here therefore returns a
:class:`RatioResult` that is either a value or "not applicable"; none of them
raises or produces an infinity.
"""

from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Dict, Iterable, Optional, Sequence

from .aggregation import GroupAggregator, GroupSummary, Scope
from .decimal_utils import HUNDRED, ZERO, quantize_currency, safe_divide, to_decimal
from .models import Account, NaturalClass, StockItem
from .reconstruction import DateLike, TransactionIndex, TransactionSource
from .stock import StockValuationReconciler

logger = logging.getLogger(__name__)

NOT_APPLICABLE = "N/A"

# Groups whose balances count as cost of sales for the gross margin
DIRECT_COST_GROUPS = ("Purchase Accounts", "Direct Expenses")


@dataclass(frozen=True)
class RatioResult:
    """A computed ratio or the not-applicable sentinel.

    Attributes:
        name: Display name of the ratio
        value: Ratio rounded to two places, or None when not applicable
        is_percentage: Whether ``value`` is expressed in percent
        target: Benchmark shown next to the ratio
    """

    name: str
    value: Optional[Decimal]
    is_percentage: bool = False
    target: str = ""

    @classmethod
    def not_applicable(cls, name: str, is_percentage: bool = False, target: str = "") -> "RatioResult":
        return cls(name=name, value=None, is_percentage=is_percentage, target=target)

    @property
    def is_applicable(self) -> bool:
        return self.value is not None

    @property
    def display(self) -> str:
        """``"3.00"``, ``"25.00%"`` or ``"N/A"``."""
        if self.value is None:
            return NOT_APPLICABLE
        return f"{self.value:.2f}%" if self.is_percentage else f"{self.value:.2f}"


def _ratio(
    name: str, numerator, denominator, is_percentage: bool = False, target: str = ""
) -> RatioResult:
    value = safe_divide(numerator, denominator)
    if value is None:
        logger.debug("%s is not applicable: denominator is zero", name)
        return RatioResult.not_applicable(name, is_percentage, target)
    if is_percentage:
        value *= HUNDRED
    return RatioResult(name, quantize_currency(value), is_percentage, target)


def current_ratio(current_assets, current_liabilities) -> RatioResult:
    """Current assets over current liabilities.

    Example:
        >>> current_ratio(15000, 5000).display
        '3.00'
        >>> current_ratio(15000, 0).display
        'N/A'
    """
    return _ratio("Current Ratio", current_assets, current_liabilities, target="2.00")


def quick_ratio(current_assets, closing_stock, current_liabilities) -> RatioResult:
    """Current assets less stock, over current liabilities."""
    quick_assets = to_decimal(current_assets) - to_decimal(closing_stock)
    return _ratio("Quick Ratio", quick_assets, current_liabilities, target="1.00")


def gross_profit_margin(revenue, direct_costs) -> RatioResult:
    """Gross profit as a percentage of revenue."""
    revenue = to_decimal(revenue)
    return _ratio(
        "GP Margin", revenue - to_decimal(direct_costs), revenue, is_percentage=True, target="25%+"
    )


def net_profit_margin(revenue, expenses) -> RatioResult:
    """Net profit as a percentage of revenue."""
    revenue = to_decimal(revenue)
    return _ratio(
        "Net Profit Margin",
        revenue - to_decimal(expenses),
        revenue,
        is_percentage=True,
        target="15%+",
    )


def _total(summaries: Iterable[GroupSummary], groups: Optional[Sequence[str]] = None) -> Decimal:
    return sum(
        (s.total for s in summaries if groups is None or s.group_name in groups),
        ZERO,
    )


class RatioAnalyzer:
    """Computes the ratio analysis report for a company.

    Balance-sheet figures are taken as on the report date; revenue and
    expenses are the movement of the period ending on that date, or the
    cumulative as-on figures when no period start is given.

    Attributes:
        aggregator: Group aggregator of the open company
        stock_reconciler: Values closing stock at weighted average cost
        current_asset_groups: Groups counted as current assets
        current_liability_groups: Groups counted as current liabilities
    """

    def __init__(
        self,
        aggregator: GroupAggregator,
        stock_reconciler: Optional[StockValuationReconciler] = None,
        current_asset_groups: Optional[Sequence[str]] = None,
        current_liability_groups: Optional[Sequence[str]] = None,
    ) -> None:
        self.aggregator = aggregator
        self.stock_reconciler = stock_reconciler or StockValuationReconciler()
        self.current_asset_groups = current_asset_groups
        self.current_liability_groups = current_liability_groups

    def analyze(
        self,
        accounts: Iterable[Account],
        transactions: TransactionSource,
        as_on_date: DateLike,
        stock_items: Iterable[StockItem] = (),
        period_start: Optional[DateLike] = None,
    ) -> Dict[str, RatioResult]:
        """Current, quick, gross and net margin ratios.

        Args:
            accounts: Account snapshot.
            transactions: Transaction snapshot (or index).
            as_on_date: Balance-sheet date.
            stock_items: Stock items whose closing value counts as a current asset.
                Stock is valued over the profit period, or over the whole
                history when no period start is given.
            period_start: Start of the profit period; defaults to cumulative.

        Returns:
            Ratio results keyed by ratio name, in display order.
        """
        accounts = list(accounts)
        if not isinstance(transactions, TransactionIndex):
            transactions = TransactionIndex(transactions)
        classifier = self.aggregator.classifier
        asset_groups = self.current_asset_groups or classifier.ordered_groups(NaturalClass.ASSETS)
        liability_groups = self.current_liability_groups or classifier.ordered_groups(
            NaturalClass.LIABILITIES
        )

        balance_scope = Scope.as_on(as_on_date)
        flow_scope = Scope.period(period_start, as_on_date) if period_start else balance_scope

        assets = self.aggregator.summarize(accounts, balance_scope, NaturalClass.ASSETS, transactions)
        liabilities = self.aggregator.summarize(
            accounts, balance_scope, NaturalClass.LIABILITIES, transactions
        )
        income = self.aggregator.summarize(accounts, flow_scope, NaturalClass.INCOME, transactions)
        expenses = self.aggregator.summarize(accounts, flow_scope, NaturalClass.EXPENSES, transactions)

        closing_stock = self.stock_reconciler.closing_stock_value(
            stock_items, transactions, period_start, as_on_date
        )

        total_current_assets = _total(assets, asset_groups) + closing_stock
        total_current_liabilities = _total(liabilities, liability_groups)
        revenue = _total(income)
        total_expenses = _total(expenses)
        direct_costs = _total(expenses, DIRECT_COST_GROUPS)

        results = [
            current_ratio(total_current_assets, total_current_liabilities),
            quick_ratio(total_current_assets, closing_stock, total_current_liabilities),
            gross_profit_margin(revenue, direct_costs),
            net_profit_margin(revenue, total_expenses),
        ]
        return {result.name: result for result in results}
