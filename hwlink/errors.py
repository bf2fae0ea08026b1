"""Exception types raised below the request/response boundary."""


class HWLinkError(Exception):
    """Base class for HWLink errors."""


class StorageError(HWLinkError):
    """A persistent storage read or write failed."""


class StorageUnavailableError(StorageError):
    """No persistent storage backend is reachable."""


class LedgerUnavailableError(HWLinkError):
    """The shared used-code ledger could not be written."""
