"""
Error hierarchy for the back-office service.

Transfer errors carry the HTTP status the API layer should answer with and a
short message that is safe to show to the end caller.
"""


class BackofficeError(Exception):
    """Base exception for all back-office errors."""


class ConfigurationError(BackofficeError):
    """Raised when a setting is invalid or missing."""


class StorageError(BackofficeError):
    """Raised by an account store when a read or write cannot be completed."""


class TransferError(BackofficeError):
    """Base class for transfer failures reported back to the caller."""

    http_status = 400
    default_message = "Transfer could not be processed"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidAmountError(TransferError):
    default_message = "Invalid transfer amount. Must be greater than 0."


class BelowMinimumError(TransferError):
    default_message = "Transfer amount is below the minimum"


class AccountNotFoundError(TransferError):
    http_status = 404
    default_message = "Account not found"


class InsufficientFundsError(TransferError):
    default_message = "Insufficient balance"


class SameAccountError(TransferError):
    default_message = "Cannot transfer money to the same account"


class PersistenceError(TransferError):
    http_status = 500
    default_message = "Failed to process transfer. Please try again."


class TransferLimitError(TransferError):
    default_message = "Transfer limit exceeded"
