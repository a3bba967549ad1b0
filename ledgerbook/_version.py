"""Version information for ledgerbook."""

__version__ = "0.3.0"
