# ukayvault/exceptions.py


class UkayVaultError(Exception):
    """Base class for every error raised by ukayvault."""


class ValidationError(UkayVaultError, ValueError):
    """A record or user entry is not acceptable."""


class MalformedBundleError(ValidationError):
    """Bundle figures make a cost computation undefined (zero pieces, negative cost)."""


class RecordNotFoundError(UkayVaultError, LookupError):
    def __init__(self, kind, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")
