"""Registry credentials from the Docker client configuration."""

import asyncio
import base64
import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DOCKER_HUB_AUTH_KEY = "https://index.docker.io/v1/"
DOCKER_HUB_ALIASES = ("index.docker.io", "docker.io", "registry-1.docker.io")

# Username docker uses for identity (refresh) tokens
IDENTITY_TOKEN_USERNAME = "<token>"

CHALLENGE_PARAM_PATTERN = re.compile(r'(\w+)="([^"]*)"')


@dataclass(frozen=True)
class Credentials:
    """Username/password pair or identity token for one registry."""

    username: str = ""
    password: str = ""
    identity_token: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.username or self.password or self.identity_token)


@dataclass(frozen=True)
class Challenge:
    """Parsed WWW-Authenticate header."""

    scheme: str
    params: dict[str, str] = field(default_factory=dict)


def parse_challenge(header: str) -> Challenge:
    """Parse a WWW-Authenticate header such as
    'Bearer realm="https://auth.docker.io/token",service="registry.docker.io"'.
    """
    scheme, _, rest = header.strip().partition(" ")
    params = dict(CHALLENGE_PARAM_PATTERN.findall(rest))
    return Challenge(scheme=scheme.lower(), params=params)


def default_docker_config_path() -> Path:
    """Location of the Docker client config, honouring $DOCKER_CONFIG."""
    config_dir = os.environ.get("DOCKER_CONFIG")
    if config_dir:
        return Path(config_dir) / "config.json"
    return Path.home() / ".docker" / "config.json"


def _registry_keys(registry: str) -> list[str]:
    """Candidate keys for a registry in the config's auths section."""
    if registry in DOCKER_HUB_ALIASES:
        return [DOCKER_HUB_AUTH_KEY, "index.docker.io", "docker.io"]
    return [registry, f"https://{registry}", f"http://{registry}"]


def _credentials_from_entry(entry: dict[str, Any]) -> Optional[Credentials]:
    """Build credentials from one auths entry."""
    identity_token = entry.get("identitytoken", "")
    encoded = entry.get("auth")
    if encoded:
        try:
            decoded = base64.b64decode(encoded).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            logger.warning("Ignoring malformed auth entry in docker config")
            return None
        username, _, password = decoded.partition(":")
        return Credentials(username, password, identity_token)

    if entry.get("username") or identity_token:
        return Credentials(entry.get("username", ""), entry.get("password", ""), identity_token)
    return None


@dataclass
class Keychain:
    """Credential lookup built from a Docker client config file.

    An empty keychain resolves every registry to anonymous access.
    """

    auths: dict[str, dict[str, Any]] = field(default_factory=dict)
    creds_store: str = ""
    cred_helpers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_docker_config(cls, path: Optional[Path] = None) -> "Keychain":
        """Load a keychain from config.json.

        Args:
            path: Config file path (default: $DOCKER_CONFIG or ~/.docker)

        Returns:
            Keychain; empty when the file does not exist or is unreadable
        """
        config_path = Path(path) if path else default_docker_config_path()
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.debug("No docker config at %s, using anonymous access", config_path)
            return cls()
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Cannot read docker config %s: %s", config_path, e)
            return cls()

        if not isinstance(data, dict):
            logger.warning("Ignoring docker config %s: not a JSON object", config_path)
            return cls()

        auths = data.get("auths") or {}
        creds_store = data.get("credsStore") or ""
        cred_helpers = data.get("credHelpers") or {}
        if (
            not isinstance(auths, dict)
            or not isinstance(creds_store, str)
            or not isinstance(cred_helpers, dict)
        ):
            logger.warning("Ignoring docker config %s: malformed auth sections", config_path)
            return cls()

        return cls(auths=auths, creds_store=creds_store, cred_helpers=cred_helpers)

    async def resolve(self, registry: str) -> Optional[Credentials]:
        """Find credentials for a registry host.

        Args:
            registry: Registry host, e.g. "ghcr.io" or "index.docker.io"

        Returns:
            Credentials, or None for anonymous access
        """
        keys = _registry_keys(registry)

        for key in keys:
            helper = self.cred_helpers.get(key)
            if helper:
                return await self._run_helper(helper, key)

        for key in keys:
            entry = self.auths.get(key)
            if isinstance(entry, dict) and entry:
                credentials = _credentials_from_entry(entry)
                if credentials:
                    return credentials

        if self.creds_store:
            return await self._run_helper(self.creds_store, keys[0])
        return None

    async def _run_helper(self, helper: str, server_url: str) -> Optional[Credentials]:
        """Ask a docker-credential-<helper> binary for credentials."""
        command = [f"docker-credential-{helper}", "get"]
        logger.debug("Running credential helper %s for %s", command[0], server_url)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate(server_url.encode("utf-8"))
        except OSError as e:
            logger.debug("Credential helper %s failed: %s", helper, e)
            return None
        if process.returncode != 0:
            logger.debug(
                "Credential helper %s exited with %d: %s",
                helper,
                process.returncode,
                stderr.decode("utf-8", "replace").strip(),
            )
            return None

        try:
            data = json.loads(stdout.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.debug("Credential helper %s returned invalid JSON: %s", helper, e)
            return None
        if not isinstance(data, dict):
            return None

        username = data.get("Username", "")
        secret = data.get("Secret", "")
        if username == IDENTITY_TOKEN_USERNAME:
            return Credentials(identity_token=secret)
        return Credentials(username=username, password=secret)
