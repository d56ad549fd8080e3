"""Error kinds raised by the relay directory."""


class DirectoryError(Exception):
    """Base class for failures reported back to directory callers.

    ``status`` is the HTTP status code the directory service answers with.
    """
    status = 400
    default_message = "Directory request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class MissingFieldError(DirectoryError):
    default_message = "Missing required fields (id, ip, port, public_key)"


class InvalidAddressError(DirectoryError):
    default_message = "Invalid IP address format"


class InvalidPortError(DirectoryError):
    default_message = "Invalid port (must be integer between 1 and 65535)"


class DuplicateRelayError(DirectoryError):
    default_message = "Relay with this ID already exists"


class RelayNotFoundError(DirectoryError):
    status = 404
    default_message = "Relay not found"


class PersistenceError(Exception):
    """Raised when a snapshot cannot be written.

    The store logs and swallows it; it never reaches HTTP callers.
    """
