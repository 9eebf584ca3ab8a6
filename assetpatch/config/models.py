from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError

SegmentCodec = Literal["auto", "gzip", "bz2"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class _BaseConfigModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class PatchingSettings(_BaseConfigModel):
    buffer_size: int = Field(default=1024 * 1024, gt=0)
    segment_codec: SegmentCodec = "auto"
    progress_interval: int = Field(default=8 * 1024 * 1024, gt=0)


class LoggingSettings(_BaseConfigModel):
    level: LogLevel = "INFO"
    structured_json: bool = False
    file_logging: bool = False
    log_dir: Optional[str] = None
    max_log_size: str = "10MB"
    backup_count: int = Field(default=3, ge=0)


class ConfigModel(_BaseConfigModel):
    patching: PatchingSettings = Field(default_factory=PatchingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def validate_config(payload: Optional[Dict[str, Any]]) -> ConfigModel:
    """Validate a raw config mapping; ``_``-prefixed keys (metadata) are ignored."""
    data = {key: value for key, value in (payload or {}).items() if not str(key).startswith("_")}
    try:
        return ConfigModel.model_validate(data)
    except PydanticValidationError as exc:
        errors = exc.errors()
        field_name = ".".join(str(part) for part in errors[0]["loc"]) if errors else None
        raise ValidationError(
            f"Invalid configuration ({len(errors)} error(s))",
            field_name=field_name,
            details={"errors": [error["msg"] for error in errors]},
        ) from exc
