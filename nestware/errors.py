class NestwareError(Exception):
    """Base exception for nestware errors."""


class ConfigurationError(NestwareError):
    """Schema metadata is missing or cannot be read."""


class ContinuationError(NestwareError):
    """A middleware broke the continuation protocol."""
