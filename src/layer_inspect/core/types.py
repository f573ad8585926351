"""Configuration and value types shared across image sources."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .auth import Keychain

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"
DEFAULT_PLATFORM = "linux/amd64"


@dataclass(frozen=True)
class Platform:
    """Target platform for selecting from a manifest index."""

    os: str
    architecture: str
    variant: str = ""

    @classmethod
    def parse(cls, value: str) -> "Platform":
        """Parse "os/arch[/variant]".

        Raises:
            ValueError: If the value does not have two or three parts
        """
        parts = value.split("/")
        if len(parts) not in (2, 3) or not all(parts):
            raise ValueError(f"invalid platform {value!r}, expected os/arch[/variant]")
        return cls(*parts)

    def matches(self, platform: Mapping[str, str]) -> bool:
        """Check a manifest index "platform" object against this platform."""
        if platform.get("os") != self.os or platform.get("architecture") != self.architecture:
            return False
        return not self.variant or platform.get("variant", "") == self.variant

    def __str__(self) -> str:
        parts = [self.os, self.architecture] + ([self.variant] if self.variant else [])
        return "/".join(parts)


@dataclass
class ImageOptions:
    """Settings for resolving and reading images.

    The keychain is carried here explicitly so nothing reaches for a
    process-wide credential store.
    """

    keychain: Keychain = field(default_factory=Keychain)
    platform: Platform = field(default_factory=lambda: Platform.parse(DEFAULT_PLATFORM))
    timeout: int = 300
    docker_host: str = DEFAULT_DOCKER_HOST
    insecure_registries: list[str] = field(default_factory=list)
    chunk_size: int = 1024 * 1024

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        docker_config: Optional[Path] = None,
        **overrides,
    ) -> "ImageOptions":
        """Build options from environment variables.

        Args:
            environ: Environment mapping (default: os.environ)
            docker_config: Docker client config path override
            **overrides: Field values that take precedence over the environment

        Returns:
            ImageOptions instance
        """
        env = os.environ if environ is None else environ
        if docker_config is None and env.get("DOCKER_CONFIG"):
            docker_config = Path(env["DOCKER_CONFIG"]) / "config.json"

        values = {
            "keychain": Keychain.from_docker_config(docker_config),
            "platform": Platform.parse(env.get("LAYER_PLATFORM", DEFAULT_PLATFORM)),
            "docker_host": env.get("DOCKER_HOST", DEFAULT_DOCKER_HOST),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def is_insecure(self, registry: str) -> bool:
        """Whether a registry should be spoken to over plain HTTP."""
        host = registry.split(":", 1)[0]
        return host in ("localhost", "127.0.0.1") or registry in self.insecure_registries
