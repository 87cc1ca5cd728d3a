from typing import Annotated

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource, YamlConfigSettingsSource

from retrace.bootstrap.config.loader import get_configfile


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class CodecSettings(BaseModel):
    compress: Annotated[
        bool,
        Field(
            description=(
                "Default compression flag used when encode() is called without\n"
                "an explicit `compress` argument. Decoding detects gzip on its own."
            ),
            default=False
        )
    ]

    compresslevel: Annotated[
        int,
        Field(
            description="gzip compression level, from 0 (store) to 9 (smallest).",
            default=9,
            ge=0,
            le=9
        )
    ]

    max_record_size: Annotated[
        int,
        Field(
            description=(
                "Maximum size in bytes of a record, before and after decompression.\n"
                "Envelopes going beyond it are rejected as corrupt."
            ),
            default=16 * 1024 * 1024,
            gt=0
        )
    ]


class LoggingSettings(BaseModel):
    level: Annotated[
        str,
        Field(
            description=(
                "Logging verbosity.\n"
                "Choose among: DEBUG, INFO, WARNING, ERROR, CRITICAL."
            ),
            default="INFO"
        )
    ]

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}")
        return level


class RetraceConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="RETRACE_",
        env_nested_delimiter="__",
        extra="ignore"
    )

    codec: Annotated[
        CodecSettings,
        Field(
            description=(
                "Envelope codec configuration.\n"
                "Controls default compression and the size limits applied while\n"
                "decoding untrusted envelopes."
            ),
            default_factory=CodecSettings
        )
    ]

    logging: Annotated[
        LoggingSettings,
        Field(
            description="Logging configuration.",
            default_factory=LoggingSettings
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        configfile = get_configfile()
        if configfile is None:
            return init_settings, env_settings
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=configfile),
        )
