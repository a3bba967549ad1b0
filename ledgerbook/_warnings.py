"""Warning categories raised by ledgerbook.

The engine keeps going on odd but survivable input and says so through
:mod:`warnings`, leaving the caller to decide how loud it should be.

Example:
    Hide data-quality noise while rendering a report::

        import warnings
        from ledgerbook._warnings import DataQualityWarning

        warnings.filterwarnings("ignore", category=DataQualityWarning)

    Turn balance drift into a hard failure during an audit run::

        warnings.simplefilter("error", ReconciliationWarning)
        engine.check_integrity(openings)
"""


class LedgerbookWarning(UserWarning):
    """Base class for all ledgerbook warnings."""


class DataQualityWarning(LedgerbookWarning):
    """Suspicious input data that the engine tolerates.

    Raised when transactions reference accounts that do not exist, when a
    transaction carries several lines against the same account, or when a
    legacy voucher record cannot be mapped onto an inventory movement.
    """


class ReconciliationWarning(LedgerbookWarning):
    """A live balance disagrees with the replay of its transaction history.

    Usually the result of an out-of-band edit to the stored balance, which
    silently corrupts every historical reconstruction after it.
    """
