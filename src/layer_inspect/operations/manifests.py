"""Manifest retrieval and platform selection."""

import json
import logging
from typing import Any, Dict

from ..core.session import RegistrySession
from ..core.types import Platform
from ..exceptions import ManifestError

logger = logging.getLogger(__name__)

DOCKER_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
OCI_INDEX = "application/vnd.oci.image.index.v1+json"

INDEX_MEDIA_TYPES = (DOCKER_MANIFEST_LIST, OCI_INDEX)
IMAGE_MEDIA_TYPES = (DOCKER_MANIFEST_V2, OCI_MANIFEST)

ACCEPT_HEADER = ", ".join(IMAGE_MEDIA_TYPES + INDEX_MEDIA_TYPES)


def _media_type(manifest: Dict[str, Any], content_type: str) -> str:
    """Media type from the manifest body, falling back to Content-Type."""
    media_type = manifest.get("mediaType") or content_type.split(";", 1)[0].strip()
    if not media_type and "manifests" in manifest:
        return OCI_INDEX
    if not media_type and "layers" in manifest:
        return OCI_MANIFEST
    return media_type


async def get_manifest(session: RegistrySession, reference: str) -> Dict[str, Any]:
    """Retrieve a manifest or index by tag or digest.

    Args:
        session: Open registry session for the repository
        reference: Tag or digest

    Returns:
        Manifest dictionary, with "mediaType" always set

    Raises:
        ManifestError: If retrieval fails or the body is not JSON
    """
    url = session.url(f"manifests/{reference}")
    async with session.request("GET", url, headers={"Accept": ACCEPT_HEADER}) as resp:
        if resp.status == 404:
            raise ManifestError(f"manifest unknown: {session.reference.repository}:{reference}")
        if resp.status >= 400:
            raise ManifestError(f"Failed to get manifest {reference}: HTTP {resp.status}")
        body = await resp.read()
        content_type = resp.headers.get("Content-Type", "")

    try:
        manifest = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestError(f"Invalid manifest JSON for {reference}: {e}") from e
    if not isinstance(manifest, dict):
        raise ManifestError(f"Invalid manifest structure for {reference}")

    manifest["mediaType"] = _media_type(manifest, content_type)
    return manifest


def select_platform_digest(index: Dict[str, Any], platform: Platform) -> str:
    """Pick the manifest digest for a platform out of an index.

    Raises:
        ManifestError: If no entry matches
    """
    for descriptor in index.get("manifests", []):
        if platform.matches(descriptor.get("platform") or {}):
            return descriptor["digest"]

    available = [
        "/".join(
            part
            for part in (
                (d.get("platform") or {}).get("os", ""),
                (d.get("platform") or {}).get("architecture", ""),
                (d.get("platform") or {}).get("variant", ""),
            )
            if part
        )
        for d in index.get("manifests", [])
    ]
    raise ManifestError(f"no manifest for platform {platform} (available: {', '.join(available)})")


async def resolve_image_manifest(
    session: RegistrySession, reference: str, platform: Platform
) -> Dict[str, Any]:
    """Fetch the single-platform image manifest for a reference.

    Indexes and manifest lists are resolved to the entry for ``platform``.

    Raises:
        ManifestError: If the manifest is of an unsupported type
    """
    manifest = await get_manifest(session, reference)
    if manifest["mediaType"] in INDEX_MEDIA_TYPES:
        digest = select_platform_digest(manifest, platform)
        logger.debug("Selected %s for platform %s", digest, platform)
        manifest = await get_manifest(session, digest)

    if manifest["mediaType"] not in IMAGE_MEDIA_TYPES:
        raise ManifestError(f"unsupported manifest media type: {manifest['mediaType']}")
    return manifest
