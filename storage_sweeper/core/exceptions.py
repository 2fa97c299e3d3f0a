# storage_sweeper/core/exceptions.py


class StorageSweeperError(Exception):
    """Base class for errors raised by the sweeper engine."""


class InvalidScanTransitionError(StorageSweeperError):
    """Raised when a scan status transition is not allowed."""

    def __init__(self, scan_id: str, from_status: str, to_status: str):
        self.scan_id = scan_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid state transition for scan {scan_id}: "
            f"Cannot move from '{from_status}' to '{to_status}'."
        )


class MalformedDeletionRequestError(StorageSweeperError):
    """Raised when a deletion request is not a sequence of scan items."""


class UnknownScanError(StorageSweeperError):
    def __init__(self, scan_id: str):
        self.scan_id = scan_id
        super().__init__(f"No scan with ID {scan_id}")


class UnknownFeatureError(StorageSweeperError):
    def __init__(self, feature: str):
        self.feature = feature
        super().__init__(f"Unknown feature '{feature}'")
