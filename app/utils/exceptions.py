"""Custom exceptions for the StoryNest backend."""

from typing import Any, Dict, Optional


class StoryNestException(Exception):
    """Base exception for StoryNest application."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize StoryNestException.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code.
            error_code: Machine-readable error code.
            details: Additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class InvalidCollectionError(StoryNestException):
    """Raised when a collection key is not in the registry."""

    def __init__(
        self,
        collection_key: str = "",
        message: str = "Invalid category",
    ) -> None:
        """Initialize InvalidCollectionError."""
        super().__init__(
            message=message,
            status_code=400,
            error_code="INVALID_COLLECTION",
            details={"collection_key": collection_key} if collection_key else None,
        )
        self.collection_key = collection_key


class ContentGenerationError(StoryNestException):
    """Raised when content generation fails."""

    def __init__(
        self,
        message: str = "Failed to generate content",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize ContentGenerationError."""
        super().__init__(
            message=message,
            status_code=500,
            error_code="CONTENT_GENERATION_ERROR",
            details=details,
        )


class TTSError(StoryNestException):
    """Raised when text-to-speech conversion fails."""

    def __init__(
        self,
        message: str = "Text-to-speech conversion failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize TTSError."""
        super().__init__(
            message=message,
            status_code=500,
            error_code="TTS_ERROR",
            details=details,
        )


class AuthenticationError(StoryNestException):
    """Raised when authentication fails."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize AuthenticationError."""
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTHENTICATION_ERROR",
            details=details,
        )


class NotFoundError(StoryNestException):
    """Raised when a resource is not found."""

    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize NotFoundError."""
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details,
        )


class ValidationError(StoryNestException):
    """Raised when validation fails."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize ValidationError."""
        super().__init__(
            message=message,
            status_code=422,
            error_code="VALIDATION_ERROR",
            details=details,
        )
