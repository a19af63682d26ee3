"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def kind(self):
        """Name of the error kind reported to API callers."""
        return type(self).__name__

    def to_dict(self):
        """Structured representation used in JSON error responses."""
        return {"kind": self.kind, "message": self.message}


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class AuthError(AppError):
    """Raised when a bearer token is missing, invalid or expired."""

    def __init__(self, message="Unauthorized."):
        """Initialize the error."""
        super().__init__(message, 401)


class PermissionDeniedError(AppError):
    """Raised when the caller lacks the rights for an action."""

    def __init__(self, message="You don't have permission to do that."):
        """Initialize the error."""
        super().__init__(message, 403)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class StateConflictError(AppError):
    """Raised when a resource is in the wrong state or a race was lost."""

    def __init__(self, message="The resource changed, please try again."):
        """Initialize the error."""
        super().__init__(message, 409)


class PartialPromotionError(AppError):
    """Raised when the waitlist promoter fails after promoting some entries."""

    def __init__(self, promoted, message="Waitlist processing failed."):
        """Initialize the error."""
        super().__init__(f"{promoted} promoted, then failed: {message}", 500)
        self.promoted = promoted

    def to_dict(self):
        """Include the number of completed promotions."""
        data = super().to_dict()
        data["promoted"] = self.promoted
        return data


class PersistenceError(AppError):
    """Raised when an underlying Firestore operation fails."""

    def __init__(self, message="A database error occurred. Please try again later."):
        """Initialize the error."""
        super().__init__(message, 503)
