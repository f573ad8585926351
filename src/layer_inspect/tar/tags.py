"""Tag matching for docker save manifests."""

from typing import List, Optional

from ..core.reference import parse_reference
from ..exceptions import InvalidReferenceError, TarReadError
from .models import ManifestEntry


def parse_repository_tag(repo_tag: str) -> tuple[str, str]:
    """Parse a repository:tag string into repository and tag.

    Args:
        repo_tag: Repository tag, e.g. "nginx:alpine" or
            "localhost:5000/myapp:latest"

    Returns:
        tuple[str, str]: (repository, tag); tag defaults to "latest"

    Examples:
        parse_repository_tag("localhost:5000/myapp:latest")
        # ("localhost:5000/myapp", "latest")

        parse_repository_tag("myapp")
        # ("myapp", "latest")
    """
    last_slash = repo_tag.rfind("/")
    last_colon = repo_tag.rfind(":")
    # Only a colon after the last slash separates the tag (localhost:5000/repo)
    if last_colon > last_slash:
        repository, tag = repo_tag[:last_colon], repo_tag[last_colon + 1 :]
        return repository, tag or "latest"
    return repo_tag, "latest"


def normalize_tag(repo_tag: str) -> str:
    """Canonical form of a tag so "nginx:alpine" equals "docker.io/library/nginx:alpine"."""
    repository, tag = parse_repository_tag(repo_tag)
    try:
        return parse_reference(f"{repository}:{tag}").name
    except InvalidReferenceError:
        return f"{repository}:{tag}"


def find_manifest_entry(entries: List[ManifestEntry], tag: Optional[str]) -> ManifestEntry:
    """Pick the manifest entry for a tag.

    Args:
        entries: Entries of manifest.json
        tag: Wanted tag, or None when the tarball must hold one image

    Returns:
        Matching manifest entry

    Raises:
        TarReadError: If no entry (or more than one, for tag None) fits
    """
    if tag is None:
        if len(entries) != 1:
            raise TarReadError(
                "tarball must contain only a single image to be used with tag None"
            )
        return entries[0]

    wanted = normalize_tag(tag)
    for entry in entries:
        if any(normalize_tag(repo_tag) == wanted for repo_tag in entry.repo_tags):
            return entry
    raise TarReadError(f"tag {tag} not found in tarball")
