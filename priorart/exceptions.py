"""
Exceptions raised by the ingestion and similarity pipelines.

Stage errors abort the current job; invariant violations are raised before
any side effect takes place.
"""


class PriorArtError(Exception):
    """Base class for pipeline errors."""
    pass


class StageError(PriorArtError):
    """A pipeline stage could not complete."""
    pass


class EmbeddingCountMismatchError(StageError):
    """Embedding service returned a different number of vectors than inputs."""
    pass


class EmbeddingDimensionError(StageError):
    """Embedding vector length differs from the configured dimension."""
    pass


class UnknownSectionError(StageError, ValueError):
    """Section value has no vector partition."""
    pass


class ChunkingInputError(StageError, ValueError):
    """Text handed to the description chunker looks like numbered claims."""
    pass


class InvariantViolation(PriorArtError):
    """A persisted-state invariant would be broken."""
    pass


class ImmutableRecordError(InvariantViolation):
    """Attempt to modify or delete a write-once record."""
    pass


class SnapshotExistsError(InvariantViolation):
    """A snapshot with the same identifier already exists."""
    pass


class InvalidStatusTransition(InvariantViolation):
    """Ingestion status would move backwards or skip out of a terminal state."""
    pass


class PreconditionError(PriorArtError):
    """Operation requested on a filing that is not in the required state."""
    pass


class FilingNotFoundError(PriorArtError):
    """Filing id does not exist."""
    pass


class FetchError(PriorArtError):
    """Document could not be downloaded."""
    pass
