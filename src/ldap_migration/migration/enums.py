"""
Migration Enums

Enum types used throughout the migration.
"""

from enum import Enum

# ════════════════════════════════════════════════════════════════════════════
# Run lifecycle
# ════════════════════════════════════════════════════════════════════════════


class RunState(str, Enum):
    """Lifecycle of a single migration run."""

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    ENUMERATING_CLIENTS = "ENUMERATING_CLIENTS"
    PROCESSING_CLIENT = "PROCESSING_CLIENT"
    FINALIZING = "FINALIZING"
    DONE = "DONE"
    FAILED = "FAILED"  # Only reachable from CONNECTING


# ════════════════════════════════════════════════════════════════════════════
# Credentials
# ════════════════════════════════════════════════════════════════════════════


class HashFormat(str, Enum):
    """Credential formats recognized in the directory's userPassword attribute."""

    SSHA = "SSHA"
    SHA = "SHA"
    MD5 = "MD5"
    CRYPT = "CRYPT"
    CLEARTEXT = "CLEARTEXT"
    BCRYPT = "bcrypt"  # Already in the target format
    UNKNOWN = "unknown"
    EMPTY = "empty"


class CredentialPolicy(str, Enum):
    """What to store for a user whose directory credential is a recognized hash."""

    RANDOM = "random"  # Provision an unknown random secret (requires out-of-band reset)
    NONE = "none"  # Never provision a credential
