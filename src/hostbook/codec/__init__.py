"""SSH client config codec."""

from hostbook.codec.parser import parse
from hostbook.codec.serializer import serialize, serialize_record

__all__ = ["parse", "serialize", "serialize_record"]
