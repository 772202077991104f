"""
JSON codec for request payloads and response bodies.
"""
from functools import lru_cache
from typing import Any, Optional, Protocol, Union

from pydantic import TypeAdapter, ValidationError

from .errors import CodecError


class Serializer(Protocol):
    """Serializer protocol for custom body handling."""

    def serialize(self, data: Any) -> bytes:
        """Serialize data to request content."""
        ...

    def deserialize(self, content: Union[str, bytes], target_type: Any = None) -> Any:
        """Deserialize content, optionally validating into target_type."""
        ...


@lru_cache(maxsize=256)
def _adapter(target_type: Any) -> TypeAdapter:
    return TypeAdapter(target_type)


def _type_name(target_type: Any) -> str:
    return getattr(target_type, "__name__", None) or repr(target_type)


class JsonCodec:
    """
    Default JSON codec backed by pydantic.

    ``deserialize`` validates into any type pydantic understands: models,
    dataclasses, TypedDicts, builtins and generic aliases such as
    ``list[int]``. Every failure is raised as CodecError.
    """

    content_type = "application/json"

    def serialize(self, data: Any) -> bytes:
        """Serialize data to JSON bytes."""
        try:
            return _adapter(type(data)).dump_json(data)
        except Exception as error:
            raise CodecError(
                f"Serialization of type ({type(data).__name__}) failed: {error}"
            ) from error

    def deserialize(self, content: Union[str, bytes], target_type: Any = None) -> Any:
        """Deserialize JSON content into target_type (plain JSON when None)."""
        target = Any if target_type is None else target_type
        try:
            return _adapter(target).validate_json(content)
        except (ValidationError, ValueError) as error:
            raise CodecError(
                f"Deserialization of type ({_type_name(target)}) failed: {error}",
                content=_as_text(content),
            ) from error


def _as_text(content: Union[str, bytes, None]) -> Optional[str]:
    if content is None or isinstance(content, str):
        return content
    return content.decode("utf-8", errors="replace")


default_codec = JsonCodec()
