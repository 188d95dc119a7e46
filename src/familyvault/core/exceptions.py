"""Custom exception hierarchy for the familyvault core."""


class FamilyVaultError(Exception):
    """Base exception for all familyvault errors."""


class NotAuthenticatedError(FamilyVaultError):
    """Raised when an actor token resolves to no user record."""


class NotInFamilyError(FamilyVaultError):
    """Raised when a write is attempted by a user without a family."""


class ForbiddenError(FamilyVaultError, PermissionError):
    """Raised when the actor fails the operation's ownership or assignment rule."""


class NotFoundError(FamilyVaultError, LookupError):
    """Raised when a target id does not resolve or crosses the family boundary."""


class InvalidOperationError(FamilyVaultError, ValueError):
    """Raised on cycle-forming moves, self-moves, and malformed input."""
