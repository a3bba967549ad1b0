"""Ledgerbook: point-in-time balances from live ledgers"""

from ._version import __version__

# Use lazy imports so that importing the package does not pull in pandas
# Modules are imported only when one of their names is accessed

__all__ = [
    "__version__",
    "Account",
    "AccountClassifier",
    "BalanceReconstructor",
    "Direction",
    "GroupAggregator",
    "GroupSummary",
    "LedgerEngine",
    "LedgerLine",
    "LedgerStatementBuilder",
    "LedgerbookConfig",
    "LinePolicy",
    "NaturalClass",
    "PeriodMovementCalculator",
    "RatioAnalyzer",
    "ReportBuilder",
    "Scope",
    "StockItem",
    "StockValuationReconciler",
    "Transaction",
    "TransactionIndex",
    "check_integrity",
]


def __getattr__(name):
    """Lazy import modules on first attribute access."""
    if name in ["Account", "Direction", "LedgerLine", "LinePolicy", "NaturalClass", "StockItem", "Transaction"]:
        from .models import (
            Account,
            Direction,
            LedgerLine,
            LinePolicy,
            NaturalClass,
            StockItem,
            Transaction,
        )

        return locals()[name]
    elif name == "AccountClassifier":
        from .classifier import AccountClassifier

        return AccountClassifier
    elif name == "BalanceReconstructor" or name == "TransactionIndex":
        from .reconstruction import BalanceReconstructor, TransactionIndex

        return locals()[name]
    elif name == "PeriodMovementCalculator":
        from .movement import PeriodMovementCalculator

        return PeriodMovementCalculator
    elif name in ["GroupAggregator", "GroupSummary", "Scope"]:
        from .aggregation import GroupAggregator, GroupSummary, Scope

        return locals()[name]
    elif name == "LedgerStatementBuilder":
        from .statement import LedgerStatementBuilder

        return LedgerStatementBuilder
    elif name == "StockValuationReconciler":
        from .stock import StockValuationReconciler

        return StockValuationReconciler
    elif name == "RatioAnalyzer":
        from .ratios import RatioAnalyzer

        return RatioAnalyzer
    elif name == "check_integrity":
        from .integrity import check_integrity

        return check_integrity
    elif name == "ReportBuilder":
        from .reports import ReportBuilder

        return ReportBuilder
    elif name == "LedgerbookConfig":
        from .config import LedgerbookConfig

        return LedgerbookConfig
    elif name == "LedgerEngine":
        from .engine import LedgerEngine

        return LedgerEngine
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
