"""Error types for the migration and helpers to describe them."""

__all__ = [
    "MigrationError",
    "ConnectionFailure",
    "DirectoryConnectionError",
    "StoreConnectionError",
    "DirectoryQueryError",
    "StoreWriteError",
    "describe_connection_error",
]


class MigrationError(Exception):
    """Base class for all migration errors."""


class ConnectionFailure(MigrationError):
    """
    The directory or the store could not be reached or rejected authentication.

    Fatal: raised from ``migrate()`` before any data is touched and no run
    summary is written.
    """

    target = "service"

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause

    @property
    def detail(self) -> str:
        """Human readable explanation of the underlying cause."""
        if self.cause is None:
            return str(self)
        return describe_connection_error(self.cause, self.target)


class DirectoryConnectionError(ConnectionFailure):
    """Binding to the LDAP directory failed."""

    target = "LDAP directory"


class StoreConnectionError(ConnectionFailure):
    """Opening the PostgreSQL pool or creating the schema failed."""

    target = "PostgreSQL database"


class DirectoryQueryError(MigrationError):
    """A directory search failed after the connection was established."""


class StoreWriteError(MigrationError):
    """An upsert against the store failed for a single entity."""


def describe_connection_error(error: Exception, target: str = "service") -> str:
    """
    Describe a connection error in terms an operator can act on.

    Parameters
    ----------
    error : Exception
        The connection error exception
    target : str
        What we tried to reach (used in the message)

    Returns
    -------
    str
        Short explanation of the failure
    """
    error_message = str(error)
    lowered = error_message.lower()

    if "timeout" in lowered or "timed out" in lowered:
        return f"Connection to {target} timed out. Please try again later."
    if "name or service not known" in lowered or "nodename nor servname" in lowered or "getaddrinfo" in lowered:
        return f"Unable to resolve {target} host. Please verify the URL is correct."
    if "connection refused" in lowered:
        return f"Connection to {target} was refused. Please verify the host and port."
    if "ssl" in lowered or "certificate" in lowered or "tls" in lowered:
        return f"SSL/TLS error connecting to {target}."
    if "invalidcredentials" in lowered or "invalid credentials" in lowered or "password authentication failed" in lowered:
        return f"Authentication to {target} was rejected. Please verify the credentials."
    return f"Unable to connect to {target}: {error_message}"
