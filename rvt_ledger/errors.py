"""
Error kinds raised by the ledger.

LedgerError and its subclasses are recoverable: the operation was rejected
and neither the log nor the configuration changed. StorageError and its
subclasses are not.
"""
from typing import Optional


class LedgerError(Exception):
    """Raised when an operation is rejected by validation."""
    pass


class AlreadyInitialized(LedgerError):
    def __init__(self):
        super().__init__("Token already created")


class NotConfigured(LedgerError):
    def __init__(self):
        super().__init__("Minting account not set")


class Unauthorized(LedgerError):
    def __init__(self, message: str = "Only minting account can mint tokens"):
        super().__init__(message)


class InsufficientBalance(LedgerError):
    def __init__(self, balance: int, required: int):
        self.balance = balance
        self.required = required
        super().__init__(f"Insufficient balance: have {balance}, need {required}")


class InvalidArgument(LedgerError):
    pass


class TransferError(LedgerError):
    """Base class for icrc1_transfer rejections."""
    pass


class InsufficientFunds(TransferError):
    def __init__(self, balance: int):
        self.balance = balance
        super().__init__(f"Insufficient funds: balance {balance}")

    def __eq__(self, other):
        return isinstance(other, InsufficientFunds) and other.balance == self.balance

    def __hash__(self):
        return hash(('InsufficientFunds', self.balance))


class BadFee(TransferError):
    def __init__(self, expected_fee: int):
        self.expected_fee = expected_fee
        super().__init__(f"Bad fee: expected {expected_fee}")


class TooOld(TransferError):
    def __init__(self):
        super().__init__("Transaction is too old")


class CreatedInFuture(TransferError):
    def __init__(self, ledger_time: int):
        self.ledger_time = ledger_time
        super().__init__(f"Transaction created in the future (ledger time {ledger_time})")


class GenericError(TransferError):
    def __init__(self, error_code: int, message: str):
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{error_code}] {message}")


class StorageError(Exception):
    """Unrecoverable failure of the backing store or of the log contents."""
    pass


class StorageExhausted(StorageError):
    def __init__(self, message: str = "Backing storage capacity exhausted"):
        super().__init__(message)


class LedgerCorruption(StorageError):
    def __init__(self, message: str, index: Optional[int] = None):
        self.index = index
        super().__init__(message if index is None else f"{message} (at block {index})")
