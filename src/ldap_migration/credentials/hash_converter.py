"""
Credential Hash Converter

Maps a directory userPassword value to a bcrypt credential for the store.

Directory hashes are one-way: {SSHA}, {SHA}, {MD5} and {CRYPT} values cannot be
turned into bcrypt without the original plaintext. The converter does not try.
For every recognized format it provisions a freshly generated random secret,
hashes that with bcrypt and discards the plaintext, so migrated accounts get a
usable but unknown password that must be reset out-of-band. With the ``none``
policy no credential is provisioned at all.
"""

import secrets
from typing import Dict
from typing import Optional
from typing import Union

import bcrypt
from loguru import logger

from ldap_migration.migration.enums import CredentialPolicy
from ldap_migration.migration.enums import HashFormat

DEFAULT_ROUNDS = 12

# Tagged formats, matched case-insensitively against the start of the value
TAGGED_FORMATS = {
    "{SSHA}": HashFormat.SSHA,
    "{SHA}": HashFormat.SHA,
    "{MD5}": HashFormat.MD5,
    "{CRYPT}": HashFormat.CRYPT,
    "{CLEARTEXT}": HashFormat.CLEARTEXT,
}

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def detect_format(credential: Optional[str]) -> HashFormat:
    """Identify the format of a directory credential value."""
    if not credential:
        return HashFormat.EMPTY

    upper = credential.upper()
    for prefix, hash_format in TAGGED_FORMATS.items():
        if upper.startswith(prefix):
            return hash_format

    if credential.startswith(BCRYPT_PREFIXES):
        return HashFormat.BCRYPT

    return HashFormat.UNKNOWN


def extract_payload(credential: Optional[str]) -> Optional[str]:
    """
    Strip the {TAG} prefix from a tagged credential.

    Returns:
        The hash payload, or None for empty, untagged or empty-payload values
    """
    hash_format = detect_format(credential)
    if hash_format not in TAGGED_FORMATS.values():
        return None
    payload = credential[credential.index("}") + 1 :]
    return payload or None


def is_ldap_hash(credential: Optional[str]) -> bool:
    """Check if a string carries one of the recognized directory tags."""
    return detect_format(credential) in TAGGED_FORMATS.values()


def hash_info(credential: Optional[str]) -> Dict[str, Union[str, int, bool]]:
    """Describe a credential for logging without exposing it."""
    hash_format = detect_format(credential)
    if hash_format == HashFormat.EMPTY:
        return {"format": hash_format.value, "length": 0, "has_data": False}
    return {"format": hash_format.value, "length": len(credential), "has_data": True}


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a plaintext password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, hashed: str) -> bool:
    """Verify a plaintext password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("ascii"))
    except ValueError as e:
        logger.error(f"Password verification failed: {e}")
        return False


def generate_secret(nbytes: int = 16) -> str:
    """Random secret for accounts whose directory password cannot be carried over."""
    return secrets.token_urlsafe(nbytes)


class HashConverter:
    """Convert directory credentials into target-store credentials."""

    def __init__(
        self,
        rounds: int = DEFAULT_ROUNDS,
        policy: Union[CredentialPolicy, str] = CredentialPolicy.RANDOM,
    ):
        """
        Initialize the converter.

        Args:
            rounds: bcrypt cost factor
            policy: CredentialPolicy (or its value) deciding what recognized hashes become
        """
        self.rounds = rounds
        self.policy = CredentialPolicy(policy)

    def convert(self, credential: Optional[str]) -> Optional[str]:
        """
        Convert a directory credential.

        Args:
            credential: userPassword value from the directory (may be empty)

        Returns:
            A bcrypt hash, or None when nothing should be stored. Never raises.
        """
        try:
            if not credential:
                logger.debug("Password skip", reason="empty_password")
                return None

            if extract_payload(credential) is None:
                logger.debug("Password skip", reason="unsupported_format", **hash_info(credential))
                return None

            if self.policy == CredentialPolicy.NONE:
                logger.debug("Password skip", reason="policy_none", **hash_info(credential))
                return None

            converted = hash_password(generate_secret(), self.rounds)
            logger.debug(
                "Password converted",
                original_format=detect_format(credential).value,
                new_format="bcrypt",
                rounds=self.rounds,
            )
            return converted
        except Exception as e:
            logger.error("Password conversion failed", error=str(e), original_format=detect_format(credential).value)
            return None
