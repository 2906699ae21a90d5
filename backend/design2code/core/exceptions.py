class Design2CodeError(Exception):
    """Base exception for the Design2Code backend."""

    pass


class RemoteBackendError(Design2CodeError):
    """Raised when the remote projects API fails or answers non-2xx."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class LocalStoreError(Design2CodeError):
    """Raised when device-local storage cannot be read or written."""

    pass
