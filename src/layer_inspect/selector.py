"""Layer selection by 1-based position or by hash."""

import re
from dataclasses import dataclass
from typing import Iterator, List, Sequence, Union

from .exceptions import InvalidLayerIdError, LayerNotFoundError, LayerOutOfRangeError
from .image.base import Image, Layer
from .utils.digest import parse_hash

INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class OrdinalToken:
    """1-based position into the image's layer list."""

    position: int


@dataclass(frozen=True)
class HashToken:
    """Layer digest or diff ID."""

    value: str


LayerToken = Union[OrdinalToken, HashToken]


def parse_token(raw: str) -> LayerToken:
    """Classify a user-supplied layer id.

    Integer-looking strings become OrdinalToken; anything else must be a
    valid sha256 hash.

    Raises:
        InvalidLayerIdError: If the token is neither an integer nor a hash
    """
    if INTEGER_PATTERN.fullmatch(raw):
        return OrdinalToken(int(raw))
    try:
        return HashToken(parse_hash(raw))
    except ValueError as e:
        raise InvalidLayerIdError(f"invalid layer id {raw}: {e}") from e


def resolve_token(image: Image, layers: Sequence[Layer], token: LayerToken) -> Layer:
    """Find the layer a single token refers to.

    Hash tokens are matched against compressed digests first, then diff IDs.

    Raises:
        LayerOutOfRangeError: If an ordinal is outside 1..len(layers)
        LayerNotFoundError: If no layer carries the hash
    """
    if isinstance(token, OrdinalToken):
        if token.position < 1 or token.position > len(layers):
            raise LayerOutOfRangeError(f"layer {token.position} does not exist")
        return layers[token.position - 1]

    layer = image.layer_by_digest(token.value)
    if layer is None:
        layer = image.layer_by_diff_id(token.value)
    if layer is None:
        raise LayerNotFoundError(f"layer {token.value} not found")
    return layer


def iter_selected_layers(image: Image, layer_ids: Sequence[str]) -> Iterator[Layer]:
    """Yield selected layers one token at a time.

    A bad token raises only when it is reached, so callers can act on the
    layers selected before it.
    """
    layers = image.layers()
    if not layer_ids:
        yield from layers
        return

    for raw in layer_ids:
        yield resolve_token(image, layers, parse_token(raw))


def select_layers(image: Image, layer_ids: Sequence[str]) -> List[Layer]:
    """Resolve layer ids to the layers to act on.

    Args:
        image: Open image
        layer_ids: User tokens; empty selects every layer

    Returns:
        Layers in token order; duplicates are kept, and with no tokens all
        layers are returned in image order

    Raises:
        LayerSelectionError: On the first token that cannot be resolved
    """
    return list(iter_selected_layers(image, layer_ids))
