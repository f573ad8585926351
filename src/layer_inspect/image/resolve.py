"""Resolve a user-supplied reference to an image.

A reference may name a docker save tarball on disk, an image in the local
Docker daemon or an image in a remote registry. Resolvers are tried in that
order and the first one that succeeds wins.
"""

import logging
from typing import Optional, Sequence

import aiohttp

from ..core.reference import parse_reference
from ..core.types import ImageOptions
from ..exceptions import ImageNotFoundError, LayerInspectError
from ..tar.reader import open_tarball_image
from .base import Image
from .daemon import open_daemon_image
from .remote import RemoteImage

logger = logging.getLogger(__name__)


class TarballResolver:
    """Treat the reference as a path to a docker save tarball."""

    name = "tarball"

    async def resolve(self, ref: str, options: ImageOptions) -> Image:
        return await open_tarball_image(ref)


class DaemonResolver:
    """Look the reference up in the local Docker daemon."""

    name = "daemon"

    async def resolve(self, ref: str, options: ImageOptions) -> Image:
        return await open_daemon_image(ref, options)


class RemoteResolver:
    """Fetch the reference from its registry."""

    name = "remote"

    async def resolve(self, ref: str, options: ImageOptions) -> Image:
        return await RemoteImage.fetch(parse_reference(ref), options)


DEFAULT_RESOLVERS = (TarballResolver(), DaemonResolver(), RemoteResolver())


async def open_image(
    ref: str,
    options: Optional[ImageOptions] = None,
    resolvers: Optional[Sequence] = None,
) -> Image:
    """이미지 참조를 tarball, 데몬, 레지스트리 순서로 찾아 엽니다.

    Args:
        ref: 이미지 참조
            - tarball 경로: "./nginx.tar"
            - 데몬/레지스트리 이미지: "nginx:alpine", "ghcr.io/org/app:v1"
        options: 이미지 옵션 (키체인, 플랫폼, 타임아웃; 기본값: ImageOptions())
        resolvers: 시도할 resolver 목록 (기본값: DEFAULT_RESOLVERS)

    Returns:
        Image: 열린 이미지 핸들 (async with 로 닫아야 함)

    Raises:
        ImageNotFoundError: 참조가 비어 있거나 모든 resolver가 실패한 경우

    Examples:
        async with await open_image("nginx:alpine") as image:
            for layer in image.layers():
                print(layer.diff_id(), layer.size())
    """
    if not ref:
        raise ImageNotFoundError("no image ref provided")

    options = options or ImageOptions()
    for resolver in resolvers if resolvers is not None else DEFAULT_RESOLVERS:
        try:
            image = await resolver.resolve(ref, options)
        except (LayerInspectError, aiohttp.ClientError, OSError) as e:
            logger.debug("%s resolver could not open %r: %s", resolver.name, ref, e)
            continue
        logger.debug("Resolved %r via %s", ref, resolver.name)
        return image

    raise ImageNotFoundError(f'unable to find image "{ref}"')
