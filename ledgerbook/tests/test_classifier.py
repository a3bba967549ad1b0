"""Tests for account group classification."""

import pytest

from ledgerbook.classifier import BUILT_IN_GROUPS, DEFAULT_NATURAL_CLASS, AccountClassifier
from ledgerbook.exceptions import GroupRegistrationError, UnknownGroupError
from ledgerbook.models import NaturalClass


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize(
        "group,expected",
        [
            ("Bank Accounts", NaturalClass.ASSETS),
            ("Sundry Debtors", NaturalClass.ASSETS),
            ("Duties & Taxes", NaturalClass.LIABILITIES),
            ("Sales Accounts", NaturalClass.INCOME),
            ("Indirect Expenses", NaturalClass.EXPENSES),
        ],
    )
    def test_built_in_groups(self, classifier, group, expected):
        """Built-in groups classify to their fixed class."""
        assert classifier.classify(group) is expected

    def test_unknown_group_falls_back_to_credit_like(self, classifier):
        """Unregistered groups are treated as liabilities."""
        assert classifier.classify("Capital Account") is DEFAULT_NATURAL_CLASS
        assert DEFAULT_NATURAL_CLASS is NaturalClass.LIABILITIES
        assert not classifier.is_debit_normal("Capital Account")

    def test_strict_mode_raises_with_suggestions(self):
        """Strict classifiers refuse unknown groups."""
        classifier = AccountClassifier(strict=True)
        with pytest.raises(UnknownGroupError) as exc_info:
            classifier.classify("Bank")
        assert exc_info.value.group == "Bank"
        assert "Bank Accounts" in exc_info.value.suggestions
        assert "Did you mean" in str(exc_info.value)

    def test_unknown_group_error_is_a_key_error(self):
        """Callers catching KeyError still work."""
        with pytest.raises(KeyError):
            AccountClassifier(strict=True).classify("Nope")


class TestRegister:
    """Tests for register()."""

    def test_register_custom_group(self, classifier):
        """Registered groups classify and list."""
        classifier.register("Stock-in-hand", NaturalClass.ASSETS)
        assert classifier.classify("Stock-in-hand") is NaturalClass.ASSETS
        assert "Stock-in-hand" in classifier.list_groups(NaturalClass.ASSETS)
        assert "Stock-in-hand" in classifier

    def test_register_accepts_class_names(self, classifier):
        """Stored records name the class as a string."""
        classifier.register("Provisions", "liabilities")
        assert classifier.classify("Provisions") is NaturalClass.LIABILITIES

    def test_register_is_idempotent(self, classifier):
        """Registering the same group twice is a no-op."""
        classifier.register("Stock-in-hand", NaturalClass.ASSETS)
        classifier.register("Stock-in-hand", NaturalClass.ASSETS)
        assert classifier.ordered_groups(NaturalClass.ASSETS).count("Stock-in-hand") == 1

    def test_conflicting_registration_rejected(self, classifier):
        """A group cannot change class."""
        classifier.register("Stock-in-hand", NaturalClass.ASSETS)
        with pytest.raises(GroupRegistrationError, match="already registered"):
            classifier.register("Stock-in-hand", NaturalClass.EXPENSES)

    def test_built_in_name_under_other_class_rejected(self, classifier):
        """Built-in groups keep their class."""
        with pytest.raises(GroupRegistrationError, match="built-in"):
            classifier.register("Sales Accounts", NaturalClass.EXPENSES)

    def test_built_in_name_under_same_class_is_noop(self, classifier):
        """Re-declaring a built-in group is harmless."""
        classifier.register("Sales Accounts", NaturalClass.INCOME)
        assert classifier.registered_groups == {}

    def test_empty_name_rejected(self, classifier):
        """Group names must not be blank."""
        with pytest.raises(GroupRegistrationError):
            classifier.register("  ", NaturalClass.ASSETS)

    def test_invalid_class_rejected(self, classifier):
        """Only the four natural classes are valid."""
        with pytest.raises(GroupRegistrationError, match="Invalid natural class"):
            classifier.register("Misc", "EQUITY")


class TestListing:
    """Tests for group listings and session isolation."""

    def test_list_groups_is_built_in_union_registered(self, classifier):
        """list_groups returns every group of the class."""
        classifier.register("Stock-in-hand", NaturalClass.ASSETS)
        expected = set(BUILT_IN_GROUPS[NaturalClass.ASSETS]) | {"Stock-in-hand"}
        assert classifier.list_groups(NaturalClass.ASSETS) == expected

    def test_ordered_groups_put_built_ins_first(self, classifier):
        """Custom groups follow the built-in ones in registration order."""
        classifier.register("Zeta", NaturalClass.EXPENSES)
        classifier.register("Alpha", NaturalClass.EXPENSES)
        groups = classifier.ordered_groups(NaturalClass.EXPENSES)
        assert groups[:3] == list(BUILT_IN_GROUPS[NaturalClass.EXPENSES])
        assert groups[3:] == ["Zeta", "Alpha"]

    def test_sessions_do_not_share_registrations(self):
        """Two companies keep separate registries."""
        first = AccountClassifier()
        second = AccountClassifier()
        first.register("Stock-in-hand", NaturalClass.ASSETS)
        assert not second.is_registered("Stock-in-hand")

    def test_copy_is_independent(self, classifier):
        """Copies start equal and then diverge."""
        classifier.register("Stock-in-hand", NaturalClass.ASSETS)
        clone = classifier.copy()
        clone.register("Provisions", NaturalClass.LIABILITIES)
        assert clone.is_registered("Stock-in-hand")
        assert not classifier.is_registered("Provisions")

    def test_from_records(self):
        """Stored group records build a classifier."""
        classifier = AccountClassifier.from_records(
            [{"name": "Stock-in-hand", "parentType": "ASSETS"}, {"name": "Other", "natural_class": "INCOME"}]
        )
        assert classifier.classify("Stock-in-hand") is NaturalClass.ASSETS
        assert classifier.classify("Other") is NaturalClass.INCOME
