"""Exception hierarchy shared by the pipeline, the stores and the API layer.

Every error carries a ``public_message`` that is safe to return to a caller.
The exception's own ``str()`` may hold diagnostic detail and is only logged.
"""

from __future__ import annotations


class StoryLensError(Exception):
    status_code = 500
    public_message = "Internal server error"


class InputError(StoryLensError):
    status_code = 400
    public_message = "Invalid request"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        if message:
            self.public_message = message


class UnsupportedImageError(InputError):
    def __init__(self, message: str = "Unsupported image format.") -> None:
        super().__init__(message)


class AuthenticationRequired(StoryLensError):
    status_code = 401
    public_message = "Authentication required"


class PermissionDenied(StoryLensError):
    status_code = 403
    public_message = "Permission denied"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        if message:
            self.public_message = message


class RecordNotFound(StoryLensError):
    status_code = 404
    public_message = "Record not found or access denied"


class ChallengeUnavailable(StoryLensError):
    status_code = 409
    public_message = "No challenge is available for this image"


class ProcessingError(StoryLensError):
    """Fatal pipeline failure. Callers only ever see the generic message."""

    status_code = 500
    public_message = "Could not process image"


class UpstreamGenerationError(ProcessingError):
    pass


class SpeechSynthesisError(UpstreamGenerationError):
    pass


class StorageError(ProcessingError):
    pass


class AssetNotFound(StorageError):
    pass
