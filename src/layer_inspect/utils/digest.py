"""Digest calculation and validation utilities."""

import hashlib
import re
from typing import BinaryIO

# Regex pattern for valid digest format (algorithm:hex)
DIGEST_PATTERN = re.compile(r"^[a-z0-9]+:[a-f0-9]+$")

# Hex lengths for the algorithms we accept
HEX_LENGTHS = {"sha256": 64, "sha512": 128}


def calculate_stream_digest(
    stream: BinaryIO, algorithm: str = "sha256", chunk_size: int = 1024 * 1024
) -> str:
    """Calculate digest of a readable binary stream without loading it whole.

    Args:
        stream: Readable binary file object, consumed to EOF
        algorithm: Hash algorithm (default: sha256)
        chunk_size: Read size in bytes

    Returns:
        Digest string in format "algorithm:hex"
    """
    hasher = hashlib.new(algorithm)
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        hasher.update(chunk)
    return f"{algorithm}:{hasher.hexdigest()}"


def validate_digest(digest: str) -> bool:
    """Validate digest format.

    Args:
        digest: Digest string to validate

    Returns:
        True if valid digest format
    """
    if not isinstance(digest, str):
        return False

    if not DIGEST_PATTERN.match(digest):
        return False

    algorithm, hex_part = digest.split(":", 1)
    if algorithm not in HEX_LENGTHS:
        return False
    return len(hex_part) == HEX_LENGTHS[algorithm]


def parse_hash(value: str) -> str:
    """Parse a layer hash of the form sha256:<64 hex>.

    Args:
        value: Candidate hash string

    Returns:
        The hash, unchanged

    Raises:
        ValueError: If the value is not a sha256 digest
    """
    if ":" not in value:
        raise ValueError("cannot parse hash: missing algorithm separator")

    algorithm, hex_part = value.split(":", 1)
    if algorithm != "sha256":
        raise ValueError(f"unsupported hash algorithm: {algorithm}")
    if len(hex_part) != HEX_LENGTHS["sha256"]:
        raise ValueError(
            f"wrong number of hex digits for sha256: {len(hex_part)}"
        )
    if not DIGEST_PATTERN.match(value):
        raise ValueError(f"invalid hex characters in {hex_part!r}")
    return value
