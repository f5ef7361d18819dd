"""Private key loading for public-key authentication."""

from __future__ import annotations

import io
from pathlib import Path
from typing import List

import paramiko
import structlog

logger = structlog.get_logger(__name__)

# Tried in order; each raises SSHException when the data is not its key type.
KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


def expand_home(keyfile: str) -> str:
    """Replace a leading ``~`` with the current user's home directory.

    Raises:
        RuntimeError: If the home directory cannot be determined.
    """
    if not keyfile.startswith("~"):
        return keyfile
    try:
        home = Path.home()
    except KeyError as e:
        raise RuntimeError(f"Could not determine home directory: {e}") from e
    return str(home) + keyfile[1:]


def parse_private_key(data: bytes) -> paramiko.PKey:
    """Parse private key bytes into a paramiko key.

    Raises:
        paramiko.SSHException: If no supported key type accepts the data.
    """
    text = data.decode("utf-8")
    last_error: Exception | None = None
    for key_class in KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(text))
        except paramiko.PasswordRequiredException:
            raise
        except (paramiko.SSHException, ValueError) as e:
            last_error = e
    raise paramiko.SSHException(f"Unsupported or invalid private key: {last_error}")


def private_key_auth_methods(keyfile: str) -> List[paramiko.PKey]:
    """Read and parse ``keyfile``, returning the keys to authenticate with.

    Every failure is logged and yields an empty list. Connecting with no keys
    then fails at the authentication step.
    """
    try:
        path = expand_home(keyfile)
    except RuntimeError as e:
        logger.error("Failed to resolve home directory", keyfile=keyfile, error=str(e))
        return []

    try:
        data = Path(path).read_bytes()
    except OSError as e:
        logger.error("Failed to read private key", keyfile=path, error=str(e))
        return []

    try:
        key = parse_private_key(data)
    except (paramiko.SSHException, ValueError) as e:
        logger.error("Failed to parse private key", keyfile=path, error=str(e))
        return []

    logger.debug("Loaded private key", keyfile=path, key_type=key.get_name())
    return [key]
