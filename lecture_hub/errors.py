"""Exceptions raised by the lecture lifecycle and download accounting."""


class LectureHubError(Exception):
    """Base class for all domain errors."""


class ValidationError(LectureHubError):
    """Bad input: missing field, unsupported type or oversize file."""


class NotFoundError(LectureHubError):
    """Referenced record does not exist."""


class StorageError(LectureHubError):
    """File store failure."""


class StorageWriteError(StorageError):
    pass


class StorageReadError(StorageError):
    pass


class PersistenceError(LectureHubError):
    """Database failure."""


class InconsistentStateError(LectureHubError):
    """A multi-step update could not be applied as a unit."""
