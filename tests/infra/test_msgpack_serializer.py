import collections
import sys

import msgpack
import pytest

from retrace.core.errors import UnknownTypeError
from retrace.core.stack.command import UndoCommand
from retrace.core.stack.commands import SetItemCommand
from retrace.core.stack.stack import UndoStack
from retrace.infra.msgpack_serializer import MsgPackSerializer
from tests.fake.fake_subjects import AppendLine, Canvas, Document, Fragile, Opaque


@pytest.mark.it
@pytest.mark.parametrize("value", [
    None, True, 0, -1, 2 ** 63, 1.5, "text", b"\x00bytes",
    [1, [2]], {"k": {"n": 1}}, (1, 2), set(), {1, 2}, frozenset({"a"}),
])
def test_primitives_and_containers_are_native(serializer, value):
    assert serializer.is_native(value)
    assert serializer.deserialize(serializer.serialize(value)) == value


@pytest.mark.it
def test_container_types_are_preserved(serializer):
    value = {"t": (1, [2, (3,)]), "s": {1}, "f": frozenset({2})}
    restored = serializer.deserialize(serializer.serialize(value))

    assert type(restored["t"]) is tuple
    assert type(restored["t"][1]) is list
    assert type(restored["t"][1][1]) is tuple
    assert type(restored["s"]) is set
    assert type(restored["f"]) is frozenset


@pytest.mark.it
def test_objects_with_dict_protocol(serializer):
    doc = Document("t", ["a"])
    restored = serializer.deserialize(serializer.serialize(doc))

    assert isinstance(restored, Document)
    assert restored == doc


@pytest.mark.it
def test_commands_are_native(serializer):
    command = SetItemCommand("k", (1, 2))
    command.redo({})

    restored = serializer.deserialize(serializer.serialize([command, AppendLine("x")]))

    assert restored == [command, AppendLine("x")]
    assert restored[0].applied is True


@pytest.mark.it
@pytest.mark.parametrize("value", [
    Canvas(1, 1),
    Opaque(),
    object(),
    collections.OrderedDict(a=1),       # subclasses are not flattened
    [1, Canvas(1, 1)],
    2 ** 64,
    bytearray(b"abc"),                  # would come back as bytes
    memoryview(b"abc"),
    [b"ok", bytearray(b"nested")],
    {"k": (1, memoryview(b"x"))},
    Document("t", [bytearray(b"line")]),
])
def test_not_native(serializer, value):
    assert not serializer.is_native(value)


@pytest.mark.it
def test_set_encoding_is_order_independent(serializer):
    a = {"alpha", "beta", "gamma", "delta"}
    b = set(reversed(sorted(a)))
    assert serializer.serialize(a) == serializer.serialize(b)


@pytest.mark.it
def test_unknown_object_type(serializer):
    data = serializer.serialize(
        msgpack.ExtType(MsgPackSerializer.OBJECT_EXT, serializer.serialize(["nowhere:Thing", {}]))
    )
    with pytest.raises(UnknownTypeError):
        serializer.deserialize(data)


@pytest.mark.it
def test_class_without_from_dict(serializer):
    data = serializer.serialize(
        msgpack.ExtType(
            MsgPackSerializer.OBJECT_EXT,
            serializer.serialize(["tests.fake.fake_subjects:Canvas", {}]),
        )
    )
    with pytest.raises(UnknownTypeError):
        serializer.deserialize(data)


@pytest.mark.it
@pytest.mark.parametrize("data", [b"\xc1", b"\x92\x01", b"\x01\x02"])
def test_invalid_bytes_raise_value_error(serializer, data):
    with pytest.raises(ValueError):
        serializer.deserialize(data)


@pytest.mark.it
def test_unknown_extension_code(serializer):
    with pytest.raises(ValueError):
        serializer.deserialize(msgpack.packb(msgpack.ExtType(77, b"")))


@pytest.mark.it
def test_inexact_bytes_types_raise_type_error(serializer):
    with pytest.raises(TypeError):
        serializer.serialize({"blob": bytearray(b"abc")})


@pytest.mark.it
def test_cyclic_containers_are_not_native(serializer):
    loop = []
    loop.append(loop)
    assert not serializer.is_native(loop)


def object_ext(serializer, ref, payload=None):
    return serializer.serialize(
        msgpack.ExtType(MsgPackSerializer.OBJECT_EXT, serializer.serialize([ref, payload or {}]))
    )


@pytest.mark.it
def test_unloaded_module_is_never_imported(serializer, monkeypatch):
    monkeypatch.delitem(sys.modules, "colorsys", raising=False)

    with pytest.raises(UnknownTypeError) as exc:
        serializer.deserialize(object_ext(serializer, "colorsys:Palette"))

    assert "not loaded" in str(exc.value)
    assert "colorsys" not in sys.modules


@pytest.mark.it
def test_failing_from_dict_raises_value_error(serializer):
    with pytest.raises(ValueError) as exc:
        serializer.deserialize(serializer.serialize(Fragile()))

    assert isinstance(exc.value.__cause__, RuntimeError)


@pytest.mark.it
def test_allowed_types_restrict_rebuilt_classes():
    restricted = MsgPackSerializer(allowed_types=[UndoStack, UndoCommand])
    stack = UndoStack(None)

    restored = restricted.deserialize(restricted.serialize([stack, AppendLine("x")]))
    assert isinstance(restored[0], UndoStack)
    assert restored[1] == AppendLine("x")

    with pytest.raises(UnknownTypeError) as exc:
        restricted.deserialize(restricted.serialize(Document("t")))
    assert exc.value.ref == "tests.fake.fake_subjects:Document"
