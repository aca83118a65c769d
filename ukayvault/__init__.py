"""UkayVault: bundle and item tracker for secondhand clothing resellers."""

__version__ = "0.1.0"
