"""Exception hierarchy for the bank demo data service."""


class BankDemoError(Exception):
    """Base exception for all bank demo errors."""


class ValidationError(BankDemoError):
    """Raised when client input is missing, malformed or out of range."""


class NotFoundError(ValidationError):
    """Raised when a referenced entity does not exist."""


class StorageError(BankDemoError):
    """Raised when the backing store fails (connectivity, constraints, driver)."""


class MappingError(StorageError):
    """Raised when a result row cannot be converted into a domain record."""
