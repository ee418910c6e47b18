from types import MappingProxyType
from typing import Callable, Mapping

from ..errors import UnsupportedFormatError
from ..models import Format
from .common import EncodingContext
from .ledes1998b import to_ledes_1998b
from .ledes20 import to_ledes_20
from .ledesxml import to_ledes_xml

Encoder = Callable[[EncodingContext], str]

ENCODERS: Mapping[Format, Encoder] = MappingProxyType({
    Format.LEDES1998B: to_ledes_1998b,
    Format.LEDES20: to_ledes_20,
    Format.LEDESXML: to_ledes_xml,
})


def encode(fmt, ctx: EncodingContext) -> str:
    try:
        encoder = ENCODERS[Format(fmt)]
    except (KeyError, ValueError):
        raise UnsupportedFormatError(fmt) from None
    return encoder(ctx)
