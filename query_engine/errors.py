"""
Engine error taxonomy.

Only ConfigurationError, GenerationFailure and EmptyResultError reach the caller,
as QueryResult.error. The others are absorbed where they occur and logged.
"""


class QueryEngineError(Exception):
    """Base class for engine errors."""


class ConfigurationError(QueryEngineError):
    """A mandatory API key is missing."""


class SourceFetchError(QueryEngineError):
    """A provider endpoint failed; recovered as an empty result."""


class GenerationFailure(QueryEngineError):
    """SQL synthesis failed on both the primary and the fallback model."""


class StructuringFailure(QueryEngineError):
    """The generated table was invalid, empty or off-scope; the rule-based merger takes over."""


class EnrichmentFailure(QueryEngineError):
    """An enrichment batch could not be fetched or parsed; fields stay missing."""


class EmptyResultError(QueryEngineError):
    """The pipeline produced no rows."""


class PersistenceFailure(QueryEngineError):
    """The audit record could not be written."""


SURFACED_ERRORS = (ConfigurationError, GenerationFailure, EmptyResultError)
