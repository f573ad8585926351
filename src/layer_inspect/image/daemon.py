"""Images exported from the local Docker daemon."""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

import aiofiles
import aiohttp

from ..core.reference import parse_reference
from ..core.session import create_session
from ..core.types import ImageOptions
from ..exceptions import DaemonError
from ..tar.reader import TarballImage, open_tarball_image

logger = logging.getLogger(__name__)

# Host name is ignored when talking over a unix socket
UNIX_SOCKET_BASE_URL = "http://docker"


def daemon_endpoint(docker_host: str) -> tuple[str, Optional[aiohttp.BaseConnector]]:
    """Base URL and connector for a DOCKER_HOST value.

    Raises:
        DaemonError: If the scheme is not unix://, tcp:// or http(s)://
    """
    if docker_host.startswith("unix://"):
        return UNIX_SOCKET_BASE_URL, aiohttp.UnixConnector(path=docker_host[len("unix://") :])
    if docker_host.startswith("tcp://"):
        return f"http://{docker_host[len('tcp://'):]}".rstrip("/"), None
    if docker_host.startswith(("http://", "https://")):
        return docker_host.rstrip("/"), None
    raise DaemonError(f"unsupported DOCKER_HOST {docker_host!r}")


async def _export_image(ref: str, options: ImageOptions, dest: Path) -> None:
    """Save an image from the daemon into a local tar file."""
    base_url, connector = daemon_endpoint(options.docker_host)
    session = await create_session(options.timeout, connector)
    try:
        async with session:
            async with session.get(f"{base_url}/images/{ref}/json") as resp:
                if resp.status == 404:
                    raise DaemonError(f"image {ref} not found in daemon")
                if resp.status >= 400:
                    raise DaemonError(f"inspecting image {ref}: HTTP {resp.status}")

            async with session.get(f"{base_url}/images/{ref}/get") as resp:
                if resp.status >= 400:
                    raise DaemonError(f"exporting image {ref}: HTTP {resp.status}")
                async with aiofiles.open(dest, "wb") as f:
                    async for chunk in resp.content.iter_chunked(options.chunk_size):
                        await f.write(chunk)
    except aiohttp.ClientError as e:
        raise DaemonError(f"reading image {ref} from daemon: {e}") from e


async def open_daemon_image(ref: str, options: ImageOptions) -> TarballImage:
    """Export an image from the Docker daemon and open it as a tarball.

    The export is written to a temporary file which is removed when the
    returned image is closed.

    Args:
        ref: Image reference known to the daemon
        options: Image options; docker_host selects the daemon

    Returns:
        TarballImage over the exported tar

    Raises:
        InvalidReferenceError: If ref is not a valid image reference
        DaemonError: If the daemon is unreachable or lacks the image
    """
    parse_reference(ref)

    fd, name = tempfile.mkstemp(prefix="layer-daemon-", suffix=".tar")
    os.close(fd)
    path = Path(name)
    try:
        await _export_image(ref, options, path)
        logger.debug("Exported %s from daemon to %s", ref, path)
        return await open_tarball_image(str(path), delete_on_close=True)
    except BaseException:
        path.unlink(missing_ok=True)
        raise
