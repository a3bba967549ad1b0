"""Account group classification.

Every account belongs to a group, and every group belongs to exactly one
natural class. The natural class decides which direction counts as
"positive" for the group, so a misclassified group has its sign inverted in
every report.

Groups a company has never registered fall back to
:data:`DEFAULT_NATURAL_CLASS` (credit-like). This keeps books with ad-hoc
groups such as "Capital Account" reporting on the correct side, but it also
means a typo in a debit-natured group name silently flips its sign. Pass
``strict=True`` to turn the fallback into an :class:`UnknownGroupError`.

Example:
    Classify groups for one open company::

        classifier = AccountClassifier()
        classifier.register("Stock-in-hand", NaturalClass.ASSETS)

        classifier.classify("Bank Accounts")   # NaturalClass.ASSETS
        classifier.classify("Capital Account")  # NaturalClass.LIABILITIES (fallback)
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from .exceptions import GroupRegistrationError, UnknownGroupError
from .models import NaturalClass

logger = logging.getLogger(__name__)

# Built-in groups, in the order reports list them
BUILT_IN_GROUPS: Dict[NaturalClass, Tuple[str, ...]] = {
    NaturalClass.ASSETS: ("Bank Accounts", "Cash-in-hand", "Sundry Debtors", "Fixed Assets"),
    NaturalClass.LIABILITIES: ("Sundry Creditors", "Loans (Liability)", "Duties & Taxes"),
    NaturalClass.INCOME: ("Sales Accounts", "Direct Incomes", "Indirect Incomes"),
    NaturalClass.EXPENSES: ("Purchase Accounts", "Direct Expenses", "Indirect Expenses"),
}

_BUILT_IN_LOOKUP: Dict[str, NaturalClass] = {
    group: natural_class for natural_class, groups in BUILT_IN_GROUPS.items() for group in groups
}

# Class assumed for groups that were never registered
DEFAULT_NATURAL_CLASS = NaturalClass.LIABILITIES


def _coerce_class(natural_class: Union[NaturalClass, str]) -> NaturalClass:
    if isinstance(natural_class, NaturalClass):
        return natural_class
    try:
        return NaturalClass(str(natural_class).upper())
    except ValueError as e:
        valid = [c.value for c in NaturalClass]
        raise GroupRegistrationError(
            f"Invalid natural class: {natural_class!r}. Must be one of {valid}"
        ) from e


class AccountClassifier:
    """Registry mapping group names to natural classes for one company.

    The registry is owned by a company session rather than shared globally,
    so registering a custom group in one open company never leaks into
    another.

    Attributes:
        strict: When True, unknown groups raise instead of falling back.

    Thread Safety:
        Classification is read-only and safe to share. ``register`` mutates
        the registry and should only be called while the company is being
        opened or edited.
    """

    def __init__(
        self,
        strict: bool = False,
        custom_groups: Optional[Mapping[str, Union[NaturalClass, str]]] = None,
    ) -> None:
        """Initialize a classifier with the built-in groups.

        Args:
            strict: If True, ``classify`` raises :class:`UnknownGroupError`
                for unregistered groups instead of using the fallback class.
            custom_groups: Optional mapping of extra group names to their
                natural classes, registered in iteration order.
        """
        self.strict = strict
        self._registered: Dict[str, NaturalClass] = {}
        for group, natural_class in (custom_groups or {}).items():
            self.register(group, natural_class)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], strict: bool = False) -> "AccountClassifier":
        """Build a classifier from stored custom group records.

        Args:
            records: Records with a ``name`` and a ``parentType`` (or
                ``natural_class``) naming the group's class.
            strict: See :meth:`__init__`.
        """
        classifier = cls(strict=strict)
        for record in records:
            natural_class = record.get("natural_class", record.get("parentType"))
            classifier.register(record["name"], natural_class)
        return classifier

    def register(self, group: str, natural_class: Union[NaturalClass, str]) -> None:
        """Register a custom group under a natural class.

        Registering the same name with the same class again is a no-op.

        Args:
            group: Group name to register.
            natural_class: Natural class of the group.

        Raises:
            GroupRegistrationError: If the name is empty, collides with a
                built-in group of another class, or is already registered
                under a different class.
        """
        natural_class = _coerce_class(natural_class)
        group = group.strip() if group else ""
        if not group:
            raise GroupRegistrationError("Group name must not be empty")

        built_in = _BUILT_IN_LOOKUP.get(group)
        if built_in is not None:
            if built_in is not natural_class:
                raise GroupRegistrationError(
                    f"'{group}' is a built-in {built_in.value} group and cannot be "
                    f"registered as {natural_class.value}"
                )
            return

        existing = self._registered.get(group)
        if existing is not None:
            if existing is not natural_class:
                raise GroupRegistrationError(
                    f"'{group}' is already registered as {existing.value}, "
                    f"not {natural_class.value}"
                )
            return

        self._registered[group] = natural_class
        logger.debug("Registered group %r as %s", group, natural_class.value)

    def classify(self, group: str) -> NaturalClass:
        """Return the natural class of a group.

        Args:
            group: Group name to classify.

        Returns:
            The group's natural class, or :data:`DEFAULT_NATURAL_CLASS` for
            unregistered groups when not strict.

        Raises:
            UnknownGroupError: If strict and the group is not registered.
        """
        natural_class = _BUILT_IN_LOOKUP.get(group) or self._registered.get(group)
        if natural_class is not None:
            return natural_class
        if self.strict:
            known = list(_BUILT_IN_LOOKUP) + list(self._registered)
            lowered = group.lower()
            similar = [g for g in known if lowered in g.lower() or g.lower() in lowered]
            raise UnknownGroupError(group, similar)
        logger.debug(
            "Group %r is not registered; treating it as %s", group, DEFAULT_NATURAL_CLASS.value
        )
        return DEFAULT_NATURAL_CLASS

    def list_groups(self, natural_class: Union[NaturalClass, str]) -> Set[str]:
        """Names of all built-in and registered groups of a natural class."""
        return set(self.ordered_groups(natural_class))

    def ordered_groups(self, natural_class: Union[NaturalClass, str]) -> List[str]:
        """Groups of a natural class: built-ins first, then registration order."""
        natural_class = _coerce_class(natural_class)
        registered = [g for g, c in self._registered.items() if c is natural_class]
        return list(BUILT_IN_GROUPS[natural_class]) + registered

    def is_registered(self, group: str) -> bool:
        """True for built-in and registered groups, False for fallbacks."""
        return group in _BUILT_IN_LOOKUP or group in self._registered

    @staticmethod
    def is_built_in(group: str) -> bool:
        return group in _BUILT_IN_LOOKUP

    def is_debit_normal(self, group: str) -> bool:
        return self.classify(group).is_debit_normal

    @property
    def registered_groups(self) -> Dict[str, NaturalClass]:
        """Copy of the custom (non built-in) registrations."""
        return dict(self._registered)

    def copy(self) -> "AccountClassifier":
        """Independent classifier with the same registrations."""
        return AccountClassifier(strict=self.strict, custom_groups=self._registered)

    def __contains__(self, group: object) -> bool:
        return isinstance(group, str) and self.is_registered(group)

    def __repr__(self) -> str:
        return f"AccountClassifier(custom_groups={len(self._registered)}, strict={self.strict})"
