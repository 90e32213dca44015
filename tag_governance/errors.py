"""
Error hierarchy for the tag governance engine.

Boundary-level errors (AuthorizationError, NotFoundError during enumeration)
are skipped by the aggregator; item-level errors are isolated by the
mutation executor; InputValidationError drives re-prompting.
"""

from __future__ import annotations


class TagGovernanceError(Exception):
    """Base class for all engine errors."""
    pass


class AuthorizationError(TagGovernanceError):
    """Raised when a boundary or resource is not accessible to the caller."""
    pass


class NotFoundError(TagGovernanceError):
    """Raised when a boundary or resource no longer exists."""
    pass


class InventoryError(TagGovernanceError):
    """Raised when the inventory provider fails for any other reason."""
    pass


class MutationError(TagGovernanceError):
    """Raised when a tag delete or merge call fails."""
    pass


class InputValidationError(TagGovernanceError):
    """Raised on a malformed operator answer or mode selection."""
    pass


class ConfigurationError(TagGovernanceError):
    """Raised when the variant dictionary or engine config is invalid."""
    pass
