"""Company session facade.

A :class:`LedgerEngine` is one open company: its group classification, its
calculators configured from a :class:`~ledgerbook.config.LedgerbookConfig`,
and the snapshot of accounts, transactions and stock items being queried.
Opening a second company means creating a second engine; nothing is shared
between them.

Example:
    Query a company loaded from stored records::

        engine = LedgerEngine.from_records(
            accounts=account_records,
            transactions=voucher_records,
            stock_items=item_records,
            custom_groups=[{"name": "Stock-in-hand", "parentType": "ASSETS"}],
        )
        engine.balance_as_of("Cash", "2024-03-31")
        engine.trial_balance("2024-03-31", start_date="2023-04-01")
"""

from decimal import Decimal
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .aggregation import GroupAggregator, GroupSummary, Scope
from .classifier import AccountClassifier
from .config import CustomGroupConfig, LedgerbookConfig
from .decimal_utils import Numeric
from .integrity import IntegrityReport, check_integrity
from .models import (
    Account,
    NaturalClass,
    StockItem,
    Transaction,
    load_accounts,
    load_stock_items,
    load_transactions,
)
from .movement import PeriodMovement, PeriodMovementCalculator
from .ratios import RatioAnalyzer, RatioResult
from .reconstruction import BalanceReconstructor, DateLike, TransactionIndex
from .reports import ReportBuilder, summaries_frame
from .statement import LedgerStatement, LedgerStatementBuilder
from .stock import StockPosition, StockRegister, StockValuationReconciler

logger = logging.getLogger(__name__)


class LedgerEngine:
    """Calculators and data snapshot of one open company.

    Attributes:
        config: Session configuration
        classifier: Group classification owned by this session
        reconstructor: As-on balance calculator
        movement_calculator: Period movement calculator
        aggregator: Group aggregator
        statement_builder: Ledger statement builder
        stock_reconciler: Stock reconstruction
        ratio_analyzer: Ratio analysis
        reports: DataFrame report builder
    """

    def __init__(
        self,
        config: Optional[LedgerbookConfig] = None,
        classifier: Optional[AccountClassifier] = None,
    ) -> None:
        self.config = config or LedgerbookConfig()
        self.classifier = classifier or self.config.build_classifier()

        settings = self.config.engine
        self.reconstructor = BalanceReconstructor(settings.line_policy)
        self.movement_calculator = PeriodMovementCalculator(settings.line_policy)
        self.aggregator = GroupAggregator(
            self.classifier, self.reconstructor, self.movement_calculator
        )
        self.statement_builder = LedgerStatementBuilder(
            self.reconstructor, settings.fallback_particulars
        )
        self.stock_reconciler = StockValuationReconciler(settings.currency_places)
        self.ratio_analyzer = RatioAnalyzer(self.aggregator, self.stock_reconciler)
        self.reports = ReportBuilder(self.aggregator, self.stock_reconciler)

        self._accounts: Dict[str, Account] = {}
        self._stock_items: Dict[str, StockItem] = {}
        self._index = TransactionIndex(())

    @classmethod
    def from_records(
        cls,
        accounts: Sequence[Any],
        transactions: Sequence[Any],
        stock_items: Sequence[Any] = (),
        custom_groups: Iterable[Mapping[str, Any]] = (),
        config: Optional[LedgerbookConfig] = None,
    ) -> "LedgerEngine":
        """Validate stored records and open a session over them.

        Args:
            accounts: Account records (models or plain dicts, legacy layout accepted).
            transactions: Transaction or legacy voucher records.
            stock_items: Stock item records.
            custom_groups: Stored ``{name, parentType}`` group records, added
                to any groups the config already declares.
            config: Session configuration; defaults apply when omitted.

        Raises:
            pydantic.ValidationError: If a record violates the data model.
            GroupRegistrationError: If a custom group conflicts with another.
        """
        engine = cls(config)
        for record in custom_groups:
            group = CustomGroupConfig.model_validate(record)
            engine.classifier.register(group.name, group.natural_class)
        engine.load(
            load_accounts(accounts), load_transactions(transactions), load_stock_items(stock_items)
        )
        return engine

    def load(
        self,
        accounts: Iterable[Account],
        transactions: Iterable[Transaction],
        stock_items: Iterable[StockItem] = (),
    ) -> None:
        """Replace the session's snapshot with already validated models."""
        self._accounts = {account.name: account for account in accounts}
        self._stock_items = {item.id: item for item in stock_items}
        self._index = TransactionIndex(transactions)
        logger.info(
            "Loaded %d accounts, %d transactions, %d stock items",
            len(self._accounts),
            len(self._index),
            len(self._stock_items),
        )

    @property
    def accounts(self) -> List[Account]:
        return list(self._accounts.values())

    @property
    def transactions(self) -> TransactionIndex:
        return self._index

    @property
    def stock_items(self) -> List[StockItem]:
        return list(self._stock_items.values())

    def account(self, name: str) -> Account:
        """Account by name.

        Raises:
            KeyError: If the session has no such account.
        """
        try:
            return self._accounts[name]
        except KeyError:
            raise KeyError(f"Unknown account: '{name}'") from None

    def stock_item(self, item_id: str) -> StockItem:
        """Stock item by identifier.

        Raises:
            KeyError: If the session has no such item.
        """
        try:
            return self._stock_items[item_id]
        except KeyError:
            raise KeyError(f"Unknown stock item: '{item_id}'") from None

    def register_group(self, group: str, natural_class: Union[NaturalClass, str]) -> None:
        """Register a custom group for this company only."""
        self.classifier.register(group, natural_class)

    # Balances

    def balance_as_of(self, account: str, as_on_date: DateLike) -> Decimal:
        """Signed (Dr-positive) balance of an account at the end of a date."""
        return self.reconstructor.as_of(
            self.account(account).signed_balance, self._index, as_on_date, account
        )

    def movement(self, account: str, start_date: DateLike, end_date: DateLike) -> Decimal:
        """Signed net movement of an account within an inclusive window."""
        return self.movement_breakdown(account, start_date, end_date).signed

    def movement_breakdown(
        self, account: str, start_date: DateLike, end_date: DateLike
    ) -> PeriodMovement:
        natural_class = self.classifier.classify(self.account(account).group)
        return self.movement_calculator.breakdown(
            self._index, account, natural_class, start_date, end_date
        )

    def summarize(
        self, natural_class: Union[NaturalClass, str], scope: Optional[Scope] = None
    ) -> List[GroupSummary]:
        """Group summaries of one class; defaults to live balances."""
        return self.aggregator.summarize(
            self.accounts, scope or Scope.current(), NaturalClass(natural_class), self._index
        )

    def check_identity(self, scope: Optional[Scope] = None) -> Tuple[bool, Decimal]:
        """``(is_balanced, difference)`` of the accounting identity for a scope."""
        return self.aggregator.check_identity(self.accounts, scope or Scope.current(), self._index)

    def statement(self, account: str, start_date: DateLike, end_date: DateLike) -> LedgerStatement:
        return self.statement_builder.statement(
            self.account(account), self._index, start_date, end_date
        )

    # Stock

    def stock_position(
        self, item_id: str, start_date: DateLike, end_date: DateLike
    ) -> StockPosition:
        return self.stock_reconciler.position(
            self.stock_item(item_id), self._index, start_date, end_date
        )

    def stock_register(
        self, item_id: str, start_date: DateLike, end_date: DateLike
    ) -> StockRegister:
        return self.stock_reconciler.register(
            self.stock_item(item_id), self._index, start_date, end_date
        )

    def closing_stock_value(self, start_date: DateLike, end_date: DateLike) -> Decimal:
        return self.stock_reconciler.closing_stock_value(
            self.stock_items, self._index, start_date, end_date
        )

    # Analysis

    def ratios(
        self, as_on_date: DateLike, period_start: Optional[DateLike] = None
    ) -> Dict[str, RatioResult]:
        return self.ratio_analyzer.analyze(
            self.accounts, self._index, as_on_date, self.stock_items, period_start
        )

    def check_integrity(
        self, opening_balances: Optional[Mapping[str, Numeric]] = None
    ) -> IntegrityReport:
        return check_integrity(self.accounts, self._index, opening_balances, self.reconstructor)

    # Report tables

    def trial_balance(
        self, end_date: DateLike, start_date: Optional[DateLike] = None
    ) -> pd.DataFrame:
        return self.reports.trial_balance(self.accounts, self._index, end_date, start_date)

    def balance_sheet(self, as_on_date: DateLike) -> pd.DataFrame:
        return self.reports.balance_sheet(self.accounts, self._index, as_on_date)

    def profit_and_loss(self, start_date: DateLike, end_date: DateLike) -> pd.DataFrame:
        return self.reports.profit_and_loss(self.accounts, self._index, start_date, end_date)

    def stock_summary(self, start_date: DateLike, end_date: DateLike) -> pd.DataFrame:
        return self.reports.stock_summary(self.stock_items, self._index, start_date, end_date)

    def group_table(self, scope: Optional[Scope] = None) -> pd.DataFrame:
        """Group totals of every class for a scope, one row per group."""
        return summaries_frame(
            self.aggregator.summarize_all(self.accounts, scope or Scope.current(), self._index)
        )

    def ratio_table(
        self, as_on_date: DateLike, period_start: Optional[DateLike] = None
    ) -> pd.DataFrame:
        return self.reports.ratio_table(self.ratios(as_on_date, period_start))

    def ledger_statement_frame(
        self, account: str, start_date: DateLike, end_date: DateLike
    ) -> pd.DataFrame:
        return self.reports.ledger_statement_frame(self.statement(account, start_date, end_date))

    def __repr__(self) -> str:
        return (
            f"LedgerEngine(company={self.config.company_name!r}, accounts={len(self._accounts)}, "
            f"transactions={len(self._index)})"
        )
