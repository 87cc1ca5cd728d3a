import os

import pytest

from retrace.core.codec.stack_codec import StackCodec
from retrace.core.stack.stack import UndoStack
from retrace.infra.msgpack_serializer import MsgPackSerializer
from tests.fake.fake_subjects import AppendLine, Document


@pytest.fixture
def serializer() -> MsgPackSerializer:
    return MsgPackSerializer()


@pytest.fixture
def codec(serializer) -> StackCodec:
    return StackCodec(serializer=serializer)


@pytest.fixture
def document_stack() -> UndoStack:
    stack = UndoStack(Document(title="notes"))
    stack.push(AppendLine("first"))
    stack.push(AppendLine("second"))
    stack.set_clean()
    stack.push(AppendLine("third"))
    stack.undo()
    return stack


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Run with no RETRACE_* variables and an empty working directory."""
    for name in list(os.environ):
        if name.startswith("RETRACE_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path
