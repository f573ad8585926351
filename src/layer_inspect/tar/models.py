"""Data models for docker save tar files."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..exceptions import TarReadError


@dataclass
class ManifestEntry:
    """One image entry of a docker save manifest.json."""

    config: str
    layers: List[str]
    repo_tags: List[str] = field(default_factory=list)
    layer_sources: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "ManifestEntry":
        """Build an entry from its manifest.json object.

        Raises:
            TarReadError: If required fields are missing or mistyped
        """
        if not isinstance(data, dict):
            raise TarReadError("Invalid manifest entry structure")
        if "Config" not in data or "Layers" not in data:
            raise TarReadError("Manifest entry is missing Config or Layers")
        if not isinstance(data["Layers"], list):
            raise TarReadError("Manifest Layers must be a list")

        return cls(
            config=data["Config"],
            layers=data["Layers"],
            repo_tags=data.get("RepoTags") or [],
            layer_sources=data.get("LayerSources") or {},
        )
