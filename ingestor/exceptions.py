"""Custom exception classes for the ingestor."""


class IngestError(Exception):
    """
    Base exception class for all ingestion errors.
    """
    pass


class UnsupportedInputError(IngestError):
    """
    Raised when an input is not plain text (bad extension, binary or undecodable content).
    """
    pass


class ChunkCountMismatchError(IngestError):
    """
    Raised when a stored total_chunks disagrees with a freshly recomputed chunk count.
    """

    def __init__(self, content_hash: str, stored: int, computed: int):
        super().__init__(
            f"Chunk count mismatch for {content_hash}: stored={stored} computed={computed}"
        )
        self.content_hash = content_hash
        self.stored = stored
        self.computed = computed


class CheckpointStoreError(IngestError):
    """
    Raised when the checkpoint store cannot durably read or write state.
    """
    pass


class FileRecordNotFoundError(IngestError):
    """
    Raised when a requested file record does not exist.
    """
    pass


class FileRecordBusyError(IngestError):
    """
    Raised when attempting to delete a file record that is not in a terminal status.
    """
    pass


class InvalidStatusTransitionError(IngestError):
    """
    Raised when a status change would leave a terminal status or skip the lifecycle.
    """
    pass


class InvalidSettingsError(IngestError):
    """
    Raised when pipeline settings fail validation.
    """
    pass


class InputStorageError(IngestError):
    """
    Raised when an uploaded input cannot be written into the watch directory.
    """
    pass
