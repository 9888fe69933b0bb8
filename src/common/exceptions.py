class PipelineError(Exception):
    """Base exception for all report pipeline errors."""
    pass

class ParseError(PipelineError):
    """Raised when a raw record cannot be decoded (timestamp or field format)."""
    pass

class IntegrityError(PipelineError):
    """Raised when the road identity table is not one name pair per road id."""
    pass

class UnresolvedCongestion(PipelineError):
    """Raised when a report has no score and no extractable speed."""
    pass

class InsufficientSample(PipelineError):
    """Raised when a group is too small for an interval or a test."""
    pass

class ConfigurationError(PipelineError):
    """Raised when configuration is invalid."""
    pass
