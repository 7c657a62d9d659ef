"""
Exception taxonomy for the training pipeline.

Every fatal condition raises a subclass of TrainerError. The pipeline is an
all-or-nothing batch job, so none of these are caught and retried inside the
package; they surface verbatim to the caller.
"""
from typing import Optional


class TrainerError(ValueError):
    """Base class for all fatal training errors."""


class ConfigError(TrainerError):
    """Invalid trainer configuration."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class CorpusFormatError(TrainerError):
    """Malformed line in a strict input format (tsv)."""

    def __init__(self, message: str, path: Optional[str] = None, line_no: Optional[int] = None):
        self.path = path
        self.line_no = line_no
        location = f"{path}:{line_no}: " if path is not None else ""
        super().__init__(f"{location}{message}")


class NormalizationInvariantError(TrainerError):
    """A normalized sentence violates a structural invariant (e.g. contains a raw space)."""


class VocabularyTooSmallError(TrainerError):
    """The configured vocabulary cannot hold the required alphabet plus meta pieces."""


class SerializationError(TrainerError):
    """Duplicate, invalid or mismatched piece during final model assembly."""
