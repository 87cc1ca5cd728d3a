import msgpack
from typing import Any, Iterable

from retrace.core.errors import DecodingError, UnknownTypeError
from retrace.core.helpers.typeref import resolve_type, type_ref_of
from retrace.core.ports.serializer import Serializer


class MsgPackSerializer(Serializer):
    """
    MsgPack-based implementation of the Serializer interface.

    - deterministic binary encoding
    - compact
    - exact types: builtin subclasses are never flattened silently, and
      bytearray / memoryview are refused since they would decode as bytes

    Besides the msgpack primitives, a few extension types are understood:

        1  object exposing to_dict() and a from_dict() classmethod,
           stored as [type_ref, to_dict()]
        2  tuple
        3  set
        4  frozenset

    Set members are stored sorted by their encoded form so the output does
    not depend on hash ordering.

    Objects are only rebuilt from classes of already loaded modules. When
    `allowed_types` is given, the class must also be one of them or a
    subclass of one of them.
    """
    OBJECT_EXT = 1
    TUPLE_EXT = 2
    SET_EXT = 3
    FROZENSET_EXT = 4

    CONTAINERS = (list, tuple, set, frozenset)
    INEXACT = (bytearray, memoryview)

    def __init__(self, allowed_types: Iterable[type] | None = None) -> None:
        self._allowed = tuple(allowed_types) if allowed_types is not None else None

    def serialize(self, message: Any) -> bytes:
        self._require_exact(message)
        return self._pack(message)

    def deserialize(self, data: bytes) -> Any:
        try:
            return msgpack.unpackb(
                data,
                raw=False,
                strict_map_key=False,
                ext_hook=self._ext_hook,
            )
        except msgpack.UnpackException as ex:
            raise ValueError(f"Invalid msgpack data: {ex}") from ex

    def is_native(self, value: Any) -> bool:
        try:
            self.serialize(value)
        except (TypeError, ValueError, OverflowError):
            return False
        return True

    def _pack(self, message: Any) -> bytes:
        return msgpack.packb(
            message,
            use_bin_type=True,
            strict_types=True,
            default=self._default,
        )

    def _require_exact(self, value: Any) -> None:
        # msgpack packs these as bin without calling default
        pending = [value]
        seen: set[int] = set()
        while pending:
            item = pending.pop()
            kind = type(item)
            if kind in self.INEXACT:
                raise TypeError(
                    f"Cannot serialize object of type '{type_ref_of(item)}' "
                    "(it would be restored as bytes)"
                )
            if kind is dict or kind in self.CONTAINERS:
                if id(item) in seen:
                    continue
                seen.add(id(item))
                if kind is dict:
                    pending.extend(item.keys())
                    pending.extend(item.values())
                else:
                    pending.extend(item)

    def _default(self, obj: Any) -> msgpack.ExtType:
        kind = type(obj)

        if kind is tuple:
            return msgpack.ExtType(self.TUPLE_EXT, self._pack(list(obj)))

        if kind is set or kind is frozenset:
            code = self.SET_EXT if kind is set else self.FROZENSET_EXT
            members = sorted(self._pack(item) for item in obj)
            return msgpack.ExtType(code, self._pack(members))

        to_dict = getattr(obj, "to_dict", None)
        from_dict = getattr(kind, "from_dict", None)
        if callable(to_dict) and callable(from_dict):
            payload = [type_ref_of(obj), to_dict()]
            self._require_exact(payload)
            return msgpack.ExtType(self.OBJECT_EXT, self._pack(payload))

        raise TypeError(f"Cannot serialize object of type '{type_ref_of(obj)}'")

    def _ext_hook(self, code: int, data: bytes) -> Any:
        if code == self.TUPLE_EXT:
            return tuple(self.deserialize(data))

        if code == self.SET_EXT:
            return {self.deserialize(item) for item in self.deserialize(data)}

        if code == self.FROZENSET_EXT:
            return frozenset(self.deserialize(item) for item in self.deserialize(data))

        if code == self.OBJECT_EXT:
            ref, payload = self.deserialize(data)
            cls = self._resolve(ref)
            try:
                return cls.from_dict(payload)
            except DecodingError:
                raise
            except Exception as ex:
                raise ValueError(f"Unable to rebuild '{ref}': {ex}") from ex

        raise ValueError(f"Unknown msgpack extension code {code}")

    def _resolve(self, ref: str) -> type:
        cls = resolve_type(ref)
        if self._allowed is not None and not issubclass(cls, self._allowed):
            raise UnknownTypeError(ref, "class is not allowed")
        if not callable(getattr(cls, "from_dict", None)):
            raise UnknownTypeError(ref, "class cannot be rebuilt (no from_dict)")
        return cls
