import json
from functools import lru_cache

from pydantic import ValidationError

from retrace.bootstrap.config.settings import RetraceConfig
from retrace.core.codec.stack_codec import StackCodec
from retrace.core.helpers.utils import setup_logging
from retrace.infra.msgpack_serializer import MsgPackSerializer


@lru_cache
def get_config() -> RetraceConfig:
    try:
        return RetraceConfig()
    except ValidationError as ex:
        msg = ["Configuration validation failed:"]
        errs = json.loads(ex.json())
        for err in errs:
            msg.append(f"  {'.'.join(str(p) for p in err['loc'])}: {err['msg']}")
        raise RuntimeError("\n".join(msg)) from ex


@lru_cache
def get_serializer() -> MsgPackSerializer:
    return MsgPackSerializer()


@lru_cache
def get_codec() -> StackCodec:
    config = get_config()
    return StackCodec(
        serializer=get_serializer(),
        compress=config.codec.compress,
        compresslevel=config.codec.compresslevel,
        max_record_size=config.codec.max_record_size,
    )


def configure_logging() -> None:
    setup_logging(get_config().logging.level)
