"""Exceptions raised by the ledgerbook engine.

The calculators themselves degrade gracefully on empty or partial input;
exceptions are reserved for classification misuse and for integrity
checks that the caller explicitly asked to enforce.
"""

from typing import List


class LedgerbookError(Exception):
    """Base class for all ledgerbook errors."""


class UnknownGroupError(LedgerbookError, KeyError):
    """Raised by a strict classifier when a group name is not registered."""

    def __init__(self, group: str, suggestions: List[str]) -> None:
        self.group = group
        self.suggestions = suggestions
        message = f"Unknown account group: '{group}'."
        if suggestions:
            message += f" Did you mean one of: {suggestions}?"
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class GroupRegistrationError(LedgerbookError, ValueError):
    """Raised when a group registration conflicts with an existing group."""


class ReconciliationError(LedgerbookError):
    """Raised when an integrity check finds critical issues.

    Attributes:
        issues: List of specific integrity problems found.

    Examples:
        Catching and inspecting issues::

            try:
                report.raise_for_issues()
            except ReconciliationError as e:
                for issue in e.issues:
                    print(f"  - {issue}")
    """

    def __init__(self, issues: List[str]) -> None:
        self.issues = issues
        bullet_list = "\n".join(f"  - {issue}" for issue in issues)
        super().__init__(
            f"Ledger integrity check found {len(issues)} "
            f"{'issue' if len(issues) == 1 else 'issues'}:\n{bullet_list}"
        )
