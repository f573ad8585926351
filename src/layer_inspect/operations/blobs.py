"""Blob retrieval: config JSON and layer downloads."""

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Dict

import aiofiles
import aiohttp

from ..core.session import RegistrySession
from ..exceptions import LayerReadError, RegistryConnectionError, RegistryError

logger = logging.getLogger(__name__)


async def get_config_blob(session: RegistrySession, digest: str) -> Dict[str, Any]:
    """Fetch and parse an image config blob.

    Raises:
        RegistryError: If the blob cannot be fetched or parsed
    """
    url = session.url(f"blobs/{digest}")
    async with session.request("GET", url) as resp:
        if resp.status >= 400:
            raise RegistryError(f"Failed to get config blob {digest}: HTTP {resp.status}")
        body = await resp.read()

    try:
        config = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RegistryError(f"Invalid config blob {digest}: {e}") from e
    if not isinstance(config, dict):
        raise RegistryError(f"Invalid config blob structure {digest}")
    return config


async def download_blob(
    session: RegistrySession, digest: str, dest: Path, chunk_size: int = 1024 * 1024
) -> int:
    """Stream a blob to a local file and verify its digest.

    Args:
        session: Open registry session for the repository
        digest: Expected sha256 digest
        dest: Destination file path
        chunk_size: Chunk size in bytes

    Returns:
        Number of bytes written

    Raises:
        LayerReadError: If the download fails or the digest does not match
    """
    url = session.url(f"blobs/{digest}")
    hasher = hashlib.sha256()
    written = 0

    try:
        async with session.request("GET", url) as resp:
            if resp.status >= 400:
                raise LayerReadError(f"Failed to get blob {digest}: HTTP {resp.status}")
            async with aiofiles.open(dest, "wb") as f:
                async for chunk in resp.content.iter_chunked(chunk_size):
                    hasher.update(chunk)
                    await f.write(chunk)
                    written += len(chunk)
    except (aiohttp.ClientError, RegistryConnectionError) as e:
        raise LayerReadError(f"Failed to download blob {digest}: {e}") from e

    actual = f"sha256:{hasher.hexdigest()}"
    if digest.startswith("sha256:") and actual != digest:
        raise LayerReadError(f"digest mismatch for blob {digest}: got {actual}")

    logger.debug("Downloaded %s (%d bytes)", digest, written)
    return written
