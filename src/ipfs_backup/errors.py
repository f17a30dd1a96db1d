"""Exception hierarchy for the backup tooling."""


class IpfsBackupError(Exception):
    """Base class for all errors raised by ipfs_backup."""


class ConfigurationError(IpfsBackupError):
    """Raised when a setting is missing or invalid."""


class TransportError(IpfsBackupError):
    """Raised when a remote endpoint answers with a non-success response.

    ``status_code`` is ``None`` when the request never produced a response
    (connection refused, timeout and similar transport failures).
    """

    def __init__(self, status_code: int | None, reason: str, body: str) -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        status = status_code if status_code is not None else "n/a"
        super().__init__(f"HTTP error: {status} {reason}\n{body}")


class InsufficientBalanceError(IpfsBackupError):
    """Raised when the funded balance does not cover the upload price."""

    def __init__(self, price: int, balance: int) -> None:
        self.price = price
        self.balance = balance
        self.deficit = price - balance
        super().__init__(
            f"Insufficient balance: need {self.deficit} more atomic units "
            f"(price={price}, balance={balance})"
        )


class ChunkError(IpfsBackupError):
    """Raised for a single failed chunk attempt."""

    def __init__(self, chunk_id: int, detail: str) -> None:
        self.chunk_id = chunk_id
        self.detail = detail
        super().__init__(f"Chunk #{chunk_id} failed: {detail}")


class UploadError(IpfsBackupError):
    """Raised when the overall upload fails."""


class DataItemError(IpfsBackupError):
    """Raised when the upload source is not a signed data item."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Not a signed data item: {detail}")
