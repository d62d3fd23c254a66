# =============================================================================
# Pipeline Errors
# =============================================================================
#
# Every failure that an endpoint reports as `500 {"error": ...}` is raised as
# a PipelineError subclass. The FastAPI exception handler in docsearch.main
# turns the exception message into the JSON body.
#
#   PipelineError
#   ├── ConfigurationError       missing credentials / env vars (fatal)
#   ├── DocumentNotFoundError    document row or storage path missing
#   ├── StorageDownloadError     object could not be read from its bucket
#   ├── SectionPersistenceError  sections insert failed
#   ├── RowSelectionError        embed batch could not select its rows
#   ├── EmbeddingError           model failed after all retries (per row)
#   └── MissingAuthorizationError  no bearer header on a function call
# =============================================================================


class PipelineError(Exception):
    """Base class for errors surfaced to API callers as 500 responses."""

    status_code = 500


class ConfigurationError(PipelineError):
    pass


class DocumentNotFoundError(PipelineError):
    pass


class StorageDownloadError(PipelineError):
    pass


class SectionPersistenceError(PipelineError):
    pass


class RowSelectionError(PipelineError):
    pass


class EmbeddingError(PipelineError):
    """Raised when the embedding model fails for one input after all retries."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class MissingAuthorizationError(PipelineError):
    pass
