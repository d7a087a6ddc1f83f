"""Error taxonomy for the streaming transfer core."""

from robyn import status_codes


class TransferError(Exception):
    """Base class for every failure that terminates a transfer session."""

    status_code: int = status_codes.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "transfer failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class MalformedRequestError(TransferError):
    """Multipart framing could not be parsed."""

    message = "error getting a part"


class UnsupportedMediaTypeError(TransferError):
    """Request body is not multipart/form-data."""

    status_code = status_codes.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    message = "expected a multipart/form-data body"


class AuthorizationError(TransferError):
    """A file part arrived before a valid token."""

    status_code = status_codes.HTTP_400_BAD_REQUEST
    message = "failed authorization for file"


class StorageError(TransferError):
    """Destination could not be created, opened or written."""

    message = "cannot write out file"


class TransientIOError(TransferError):
    """Read or write failed in the middle of a stream."""

    message = "error reading data"


class ObjectNotFoundError(TransferError):
    status_code = status_codes.HTTP_404_NOT_FOUND
    message = "file not found"


class PathEscapeError(TransferError):
    """Requested object name resolves outside the storage root."""

    status_code = status_codes.HTTP_400_BAD_REQUEST
    message = "invalid object name"


class AdmissionRejectedError(TransferError):
    status_code = status_codes.HTTP_503_SERVICE_UNAVAILABLE
    message = "too many concurrent sessions"


class CipherConfigError(ValueError):
    """Cipher key or IV has an unusable length or encoding."""


class PartialWriteError(OSError):
    """Sink accepted fewer bytes than it was given."""
