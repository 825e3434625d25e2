"""Configuration management for the acrd daemon."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "ACRD_CONFIG"
DEFAULT_ENGINE = "acrd.engine.python_engine:PythonEngine"


class AcrConfig(BaseModel):
    """Daemon options, editable at runtime through the `set` command."""

    propose_builtins: bool = Field(
        default=False, description="Propose Python builtins as completions"
    )
    engine: str = Field(
        default=DEFAULT_ENGINE,
        description="Analysis engine class as 'package.module:ClassName'",
    )
    log_level: str = Field(default="INFO", description="Daemon logging level")
    cache_ttl_minutes: int = Field(
        default=10, description="Minutes a parsed file stays cached without access"
    )

    model_config = {"validate_assignment": True}

    @field_validator("engine")
    @classmethod
    def validate_engine(cls, v: str) -> str:
        module, sep, attr = v.partition(":")
        if not module or not sep or not attr:
            raise ValueError("engine must look like 'package.module:ClassName'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {v!r}")
        return level

    @field_validator("cache_ttl_minutes")
    @classmethod
    def validate_cache_ttl(cls, v: int) -> int:
        if v < 1:
            raise ValueError("cache_ttl_minutes must be at least 1")
        return v


def option_name(attr: str) -> str:
    """Attribute name to the dashed name used on the command line."""
    return attr.replace("_", "-")


def attr_name(option: str) -> str:
    return option.replace("-", "_")


def format_option(config: AcrConfig, attr: str) -> str:
    """Render one option as a `name = value` line."""
    value = getattr(config, attr)
    return f"{option_name(attr)} = {json.dumps(value)}\n"


def list_options() -> List[str]:
    return list(AcrConfig.model_fields.keys())


def parse_option_value(raw: str) -> Any:
    """Interpret a command-line value; JSON literals first, plain text otherwise."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


class ConfigManager:
    """Manages configuration loading and saving."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.default_config_path()
        self._config: Optional[AcrConfig] = None

    @staticmethod
    def default_config_path() -> Path:
        override = os.environ.get(CONFIG_PATH_ENV)
        if override:
            return Path(override)
        return Path.home() / ".config" / "acrd" / "config.json"

    @property
    def config(self) -> AcrConfig:
        if self._config is None:
            return self.load()
        return self._config

    def load(self) -> AcrConfig:
        """Load configuration from file or create default."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data: Dict[str, Any] = json.load(f)
                self._config = AcrConfig(**data)
            except Exception as e:
                raise ValueError(f"Failed to load config from {self.config_path}: {e}")
        else:
            self._config = AcrConfig()

        return self._config

    def save(self, config: Optional[AcrConfig] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self._config

        if config is None:
            raise ValueError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            json.dump(config.model_dump(), f, indent=2)

    def set_option(self, option: str, raw_value: str) -> str:
        """Validate, store and persist one option.

        Returns:
            The option's `name = value` line, or a one-line error message
        """
        attr = attr_name(option)
        config = self.config
        if attr not in AcrConfig.model_fields:
            return f"unknown option '{option}'\n"

        try:
            field_type = AcrConfig.model_fields[attr].annotation
            value = raw_value if field_type is str else parse_option_value(raw_value)
            setattr(config, attr, value)
        except ValidationError as e:
            reason = e.errors()[0].get("msg", str(e))
            return f"invalid value for '{option}': {reason}\n"

        try:
            self.save(config)
        except OSError as e:
            logger.warning(f"Could not persist config to {self.config_path}: {e}")

        return format_option(config, attr)

    def get_option(self, option: str) -> str:
        attr = attr_name(option)
        if attr not in AcrConfig.model_fields:
            return f"unknown option '{option}'\n"
        return format_option(self.config, attr)

    def list_all(self) -> str:
        config = self.config
        return "".join(format_option(config, attr) for attr in list_options())
