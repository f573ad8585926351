"""Image reference parsing with Docker Hub defaults."""

import re
from dataclasses import dataclass
from typing import Optional

from ..exceptions import InvalidReferenceError
from ..utils.digest import validate_digest

DEFAULT_REGISTRY = "index.docker.io"
DEFAULT_TAG = "latest"

# Docker Hub answers the v2 API on a different host than its canonical name
DOCKER_HUB_API_HOST = "registry-1.docker.io"

REPOSITORY_PATTERN = re.compile(
    r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*(?:/[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*)*$"
)
TAG_PATTERN = re.compile(r"^[\w][\w.-]{0,127}$")


@dataclass(frozen=True)
class Reference:
    """A parsed image reference."""

    registry: str
    repository: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    @property
    def identifier(self) -> str:
        """Tag or digest used to address the manifest."""
        return self.digest or self.tag or DEFAULT_TAG

    @property
    def api_host(self) -> str:
        """Host serving the registry API for this reference."""
        if self.registry == DEFAULT_REGISTRY:
            return DOCKER_HUB_API_HOST
        return self.registry

    @property
    def name(self) -> str:
        """Fully qualified name, e.g. index.docker.io/library/alpine:latest."""
        if self.digest:
            return f"{self.registry}/{self.repository}@{self.digest}"
        return f"{self.registry}/{self.repository}:{self.identifier}"

    def __str__(self) -> str:
        return self.name


def _split_registry(name: str) -> tuple[str, str]:
    """Split the registry host off a repository name, if present."""
    if "/" not in name:
        return DEFAULT_REGISTRY, name

    first, rest = name.split("/", 1)
    if "." in first or ":" in first or first == "localhost":
        if first == "docker.io":
            first = DEFAULT_REGISTRY
        return first, rest
    return DEFAULT_REGISTRY, name


def parse_reference(ref: str) -> Reference:
    """Parse an image reference string.

    Args:
        ref: Reference such as "alpine", "ghcr.io/org/app:v1" or
            "localhost:5000/app@sha256:..."

    Returns:
        Parsed Reference with registry, repository and tag or digest

    Raises:
        InvalidReferenceError: If the reference is malformed

    Examples:
        parse_reference("alpine")
        # Reference(registry="index.docker.io", repository="library/alpine", tag="latest")

        parse_reference("localhost:5000/myapp:v1")
        # Reference(registry="localhost:5000", repository="myapp", tag="v1")
    """
    if not ref:
        raise InvalidReferenceError("empty image reference")

    name, digest, tag = ref, None, None
    if "@" in name:
        name, digest = name.split("@", 1)
        if not validate_digest(digest):
            raise InvalidReferenceError(f"invalid digest in reference {ref!r}")
    else:
        # A colon after the last slash separates the tag
        last_slash = name.rfind("/")
        last_colon = name.rfind(":")
        if last_colon > last_slash:
            name, tag = name[:last_colon], name[last_colon + 1 :]
            if not TAG_PATTERN.match(tag):
                raise InvalidReferenceError(f"invalid tag {tag!r} in reference {ref!r}")
        else:
            tag = DEFAULT_TAG

    registry, repository = _split_registry(name)
    if registry == DEFAULT_REGISTRY and "/" not in repository:
        repository = f"library/{repository}"

    if not REPOSITORY_PATTERN.match(repository):
        raise InvalidReferenceError(f"invalid repository {repository!r} in reference {ref!r}")

    return Reference(registry=registry, repository=repository, tag=tag, digest=digest)
