"""
Custom Exceptions Module

This module defines the exception hierarchy for sound field synthesis,
providing specific error types for validation failures and numerical
degeneracies.
"""

class SFSError(Exception):
    """Base exception class for all sound field synthesis errors."""
    pass


class ConfigurationError(SFSError):
    """Error in the synthesis configuration."""
    pass


class InvalidArgumentError(SFSError):
    """Error due to malformed or inconsistent arguments."""
    pass


class UnsupportedModelError(SFSError):
    """Error for a source model the requested operation does not handle."""
    pass


class MissingReferenceError(SFSError):
    """Error when a reference point is required but not configured."""
    pass


class NumericalDegeneracyError(SFSError):
    """Error for singular or ill-conditioned evaluations."""
    pass


class HRIRError(SFSError):
    """Error related to head-related impulse response data."""
    pass


class MathError(SFSError):
    """Error in mathematical calculations."""

    class DomainError(SFSError):
        """Error due to input values outside the valid domain."""
        pass
