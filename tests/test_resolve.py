"""Tests for resolving references through the tarball, daemon and registry chain."""

import pytest

from layer_inspect.core.types import ImageOptions
from layer_inspect.exceptions import DaemonError, ImageNotFoundError, RegistryError
from layer_inspect.image.resolve import TarballResolver, open_image
from layer_inspect.tar.reader import TarballImage
from tests.helpers import FakeImage


class ScriptedResolver:
    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.calls = []

    async def resolve(self, ref, options):
        self.calls.append(ref)
        if self.error:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_empty_ref():
    resolver = ScriptedResolver("never")

    with pytest.raises(ImageNotFoundError, match="no image ref provided"):
        await open_image("", resolvers=[resolver])
    assert resolver.calls == []


@pytest.mark.asyncio
async def test_first_success_wins():
    image = FakeImage([])
    first = ScriptedResolver("tarball", error=FileNotFoundError("nope"))
    second = ScriptedResolver("daemon", result=image)
    third = ScriptedResolver("remote", result=FakeImage([]))

    assert await open_image("app", resolvers=[first, second, third]) is image
    assert first.calls == ["app"]
    assert third.calls == []


@pytest.mark.asyncio
async def test_all_resolvers_fail():
    resolvers = [
        ScriptedResolver("tarball", error=FileNotFoundError("nope")),
        ScriptedResolver("daemon", error=DaemonError("no daemon")),
        ScriptedResolver("remote", error=RegistryError("401")),
    ]

    with pytest.raises(ImageNotFoundError, match='unable to find image "ghost:1"'):
        await open_image("ghost:1", resolvers=resolvers)
    assert all(resolver.calls == ["ghost:1"] for resolver in resolvers)


@pytest.mark.asyncio
async def test_unexpected_errors_propagate():
    resolvers = [ScriptedResolver("broken", error=RuntimeError("bug"))]

    with pytest.raises(RuntimeError):
        await open_image("app", resolvers=resolvers)


@pytest.mark.asyncio
async def test_tarball_path(two_layer_image):
    async with await open_image(
        str(two_layer_image.path), ImageOptions(), resolvers=[TarballResolver()]
    ) as image:
        assert isinstance(image, TarballImage)
        assert len(image.layers()) == 2
