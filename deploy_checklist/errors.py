# deploy_checklist/errors.py
"""Error taxonomy shared by the store, the API and the client."""


class ChecklistError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ChecklistError):
    status_code = 400


class NotFoundError(ChecklistError):
    status_code = 404


class StorageError(ChecklistError):
    status_code = 500


class PhotoTooLargeError(ChecklistError):
    """Raised by the per-photo size gate; the store turns it into a skip."""
    status_code = 413

    def __init__(self, size: int, limit: int):
        super().__init__(f"Photo payload is {size} characters (limit {limit})")
        self.size = size
        self.limit = limit


class NetworkError(ChecklistError):
    """Client-side transport failure; safe to retry."""
    status_code = 503
