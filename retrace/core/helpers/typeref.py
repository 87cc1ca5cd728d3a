import sys
from typing import Any

from retrace.core.errors import UnknownTypeError


def type_ref(cls: type) -> str:
    """Return the "module:qualname" reference of a class."""
    return f"{cls.__module__}:{cls.__qualname__}"


def type_ref_of(obj: Any) -> str:
    return type_ref(type(obj))


def resolve_type(ref: str) -> type:
    """
    Resolve a "module:qualname" reference back to a class.

    Only modules that are already loaded are searched: a reference never
    triggers an import, so decoding cannot run a module's import-time code.
    Applications import the modules defining their stack, command and
    subject classes before decoding.

    Raises UnknownTypeError when the module is not loaded, when an
    attribute along the qualname is missing, or when the target is not
    a class. Classes defined inside functions ("<locals>") are never
    resolvable.
    """
    if not isinstance(ref, str) or ref.count(":") != 1:
        raise UnknownTypeError(str(ref), "malformed reference")

    module_name, qualname = ref.split(":")
    if not module_name or not qualname or "<locals>" in qualname:
        raise UnknownTypeError(ref, "not importable")

    target: Any = sys.modules.get(module_name)
    if target is None:
        raise UnknownTypeError(ref, f"module '{module_name}' is not loaded")

    for part in qualname.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as ex:
            raise UnknownTypeError(ref, f"missing attribute '{part}'") from ex

    if not isinstance(target, type):
        raise UnknownTypeError(ref, "not a class")

    return target
