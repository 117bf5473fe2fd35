"""Error taxonomy for the memory layer."""


class MemoryLayerError(RuntimeError):
    """Base class for memory layer failures."""


class ConfigurationError(MemoryLayerError):
    """A required credential or backend setting is missing."""


class CollaboratorUnavailable(MemoryLayerError):
    """The target index or namespace cannot be resolved."""


# The store contract names this failure StoreError.
StoreError = CollaboratorUnavailable


class BackendCallFailure(MemoryLayerError):
    """The LLM backend failed, timed out, or returned unusable output."""
