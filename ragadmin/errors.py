class RagAdminError(Exception):
    """Base class for service errors."""


class InvalidIndexNameError(RagAdminError, ValueError):
    pass


class IndexNotFoundError(RagAdminError):
    pass


class IndexExistsError(RagAdminError):
    """Raised when an index is re-created with a different dimension."""


class DimensionMismatchError(RagAdminError, ValueError):
    pass


class UnsupportedFileError(RagAdminError):
    pass


class UnsupportedStoreError(RagAdminError):
    pass


class ExtractionError(RagAdminError):
    """Raised when no usable text can be obtained from an upload."""


class EmbeddingError(RagAdminError):
    """Raised when the embeddings endpoint fails or answers garbage."""


class NotFoundError(RagAdminError):
    pass


class AuthError(RagAdminError):
    pass
