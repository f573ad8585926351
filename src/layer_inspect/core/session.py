"""HTTP sessions for registry and daemon access."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import aiohttp

from ..exceptions import AuthenticationError, RegistryConnectionError
from .auth import Challenge, Credentials, parse_challenge
from .reference import Reference
from .types import ImageOptions

logger = logging.getLogger(__name__)

CLIENT_ID = "layer-inspect"


async def create_session(
    timeout: int = 30, connector: Optional[aiohttp.BaseConnector] = None
) -> aiohttp.ClientSession:
    """Create an aiohttp session.

    Args:
        timeout: Connect and per-read timeout in seconds; there is no total
            limit so large layer blobs can stream to completion
        connector: Optional connector (e.g. a UnixConnector for the daemon)

    Returns:
        New client session; the caller must close it
    """
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=None, sock_connect=timeout, sock_read=timeout),
    )


class RegistrySession:
    """Authenticated request helper for one repository on one registry.

    Authorization is negotiated lazily: the first 401 response carries a
    WWW-Authenticate challenge which is answered once, then the request is
    retried.
    """

    def __init__(self, reference: Reference, options: ImageOptions) -> None:
        self.reference = reference
        self.options = options
        scheme = "http" if options.is_insecure(reference.registry) else "https"
        self.base_url = f"{scheme}://{reference.api_host}"
        self.session: Optional[aiohttp.ClientSession] = None
        self._authorization: Optional[str] = None

    async def __aenter__(self) -> "RegistrySession":
        if not self.session:
            self.session = await create_session(self.options.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying session."""
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    def url(self, path: str) -> str:
        """Absolute URL for a /v2/<repository>/... path."""
        return f"{self.base_url}/v2/{self.reference.repository}/{path.lstrip('/')}"

    @asynccontextmanager
    async def request(
        self, method: str, url: str, headers: Optional[Dict[str, str]] = None
    ) -> AsyncIterator[aiohttp.ClientResponse]:
        """Send a request, answering one auth challenge if needed.

        Args:
            method: HTTP method
            url: Absolute URL
            headers: Extra request headers

        Yields:
            The response; it is released when the context exits

        Raises:
            AuthenticationError: If the registry still refuses after auth
            RegistryConnectionError: If the registry cannot be reached
        """
        resp = await self._send(method, url, headers)
        if resp.status == 401:
            challenge = parse_challenge(resp.headers.get("WWW-Authenticate", ""))
            resp.release()
            await self._authenticate(challenge)
            resp = await self._send(method, url, headers)
            if resp.status == 401:
                resp.release()
                raise AuthenticationError(
                    f"unauthorized: {method} {url} rejected after authentication"
                )
        try:
            yield resp
        finally:
            resp.release()

    async def _send(
        self, method: str, url: str, headers: Optional[Dict[str, str]]
    ) -> aiohttp.ClientResponse:
        if self.session is None:
            raise RegistryConnectionError("registry session is not open")

        merged = dict(headers or {})
        if self._authorization:
            merged["Authorization"] = self._authorization
        try:
            return await self.session.request(method, url, headers=merged)
        except aiohttp.ClientError as e:
            raise RegistryConnectionError(f"{method} {url}: {e}") from e

    async def _credentials(self) -> Optional[Credentials]:
        credentials = await self.options.keychain.resolve(self.reference.registry)
        if credentials is None or credentials.is_empty:
            return None
        return credentials

    async def _authenticate(self, challenge: Challenge) -> None:
        credentials = await self._credentials()

        if challenge.scheme == "basic":
            if credentials is None:
                raise AuthenticationError(
                    f"registry {self.reference.registry} requires credentials"
                )
            self._authorization = aiohttp.BasicAuth(
                credentials.username, credentials.password
            ).encode()
            return

        if challenge.scheme != "bearer" or "realm" not in challenge.params:
            raise AuthenticationError(
                f"unsupported auth challenge from {self.reference.registry}: {challenge.scheme!r}"
            )

        token = await self._fetch_token(challenge, credentials)
        self._authorization = f"Bearer {token}"

    async def _fetch_token(
        self, challenge: Challenge, credentials: Optional[Credentials]
    ) -> str:
        """Exchange credentials (or nothing) for a bearer token."""
        realm = challenge.params["realm"]
        service = challenge.params.get("service", "")
        scope = challenge.params.get("scope") or f"repository:{self.reference.repository}:pull"
        logger.debug("Fetching token from %s for scope %s", realm, scope)

        try:
            if credentials is not None and credentials.identity_token:
                form = {
                    "grant_type": "refresh_token",
                    "refresh_token": credentials.identity_token,
                    "service": service,
                    "scope": scope,
                    "client_id": CLIENT_ID,
                }
                async with self.session.post(realm, data=form) as resp:
                    await self._check_token_response(resp)
                    data = await resp.json(content_type=None)
            else:
                headers = {}
                if credentials is not None:
                    headers["Authorization"] = aiohttp.BasicAuth(
                        credentials.username, credentials.password
                    ).encode()
                params = {"service": service, "scope": scope}
                async with self.session.get(realm, params=params, headers=headers) as resp:
                    await self._check_token_response(resp)
                    data = await resp.json(content_type=None)
        except aiohttp.ClientError as e:
            raise RegistryConnectionError(f"fetching token from {realm}: {e}") from e
        except ValueError as e:
            raise AuthenticationError(f"auth endpoint {realm} returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise AuthenticationError(f"auth endpoint {realm} returned an unexpected response")
        token = data.get("token") or data.get("access_token")
        if not token or not isinstance(token, str):
            raise AuthenticationError(f"auth endpoint {realm} returned no token")
        return token

    @staticmethod
    async def _check_token_response(resp: aiohttp.ClientResponse) -> None:
        if resp.status in (401, 403):
            raise AuthenticationError(f"token request denied: HTTP {resp.status}")
        resp.raise_for_status()
