"""
Compiler Configuration Management
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, asdict, fields
from typing import Optional, Dict, Any

from dotenv import load_dotenv

from gpt_compiler.exceptions import ConfigError


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _coerce_setting(name: str, value: Any, expected: Any) -> Any:
    """Convert a JSON config value to the field's type or raise ConfigError"""
    if expected is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return _parse_bool(value)
    elif expected in (int, float):
        if not isinstance(value, bool):
            try:
                return expected(value)
            except (TypeError, ValueError):
                pass
    elif expected is str:
        if isinstance(value, str):
            return value
    elif value is None or isinstance(value, str):
        # Optional[str]
        return value

    raise ConfigError(
        f"Invalid value for {name} in config file: {value!r}", setting=name
    )


@dataclass
class CompilerConfig:
    """Configuration for GPT Compiler"""

    # Generation service
    api_key: Optional[str] = None
    model: str = "anthropic/claude-3-opus-20240229"
    api_url: str = "https://openrouter.ai/api/v1/chat/completions"
    referer: str = "https://github.com/KaiStephens/aiCompiler"
    app_title: str = "AI GPT Compiler"
    request_timeout: float = 300.0  # 5 minutes

    # Compilation settings
    default_language: str = "javascript"
    document_extension: str = ".gpt"

    # Watch settings
    initial_scan: bool = True
    max_concurrent: int = 4  # 0 = unbounded

    # Logging
    verbose: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None
    json_logs: bool = False

    def load_from_file(self, config_path: str) -> None:
        """Load configuration from JSON file"""
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}", setting="config")
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file {path}: {e}", setting="config") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object", setting="config")

        field_types = {f.name: f.type for f in fields(self)}
        for key, value in data.items():
            if key in field_types:
                setattr(self, key, _coerce_setting(key, value, field_types[key]))

    @classmethod
    def load_default(cls, env_file: Optional[str] = None) -> "CompilerConfig":
        """Load configuration from .env file and environment variables"""
        # Real environment variables win over .env entries
        load_dotenv(dotenv_path=env_file, override=False)

        config = cls()
        config._load_from_env()
        return config

    def _load_from_env(self) -> None:
        """Load configuration from environment variables"""
        env_mappings = {
            "OPENROUTER_API_KEY": "api_key",
            "AI_MODEL": "model",
            "DEFAULT_OUTPUT_LANG": "default_language",
            "GPT_COMPILER_API_URL": "api_url",
            "GPT_COMPILER_TIMEOUT": ("request_timeout", float),
            "GPT_COMPILER_MAX_CONCURRENT": ("max_concurrent", int),
            "GPT_COMPILER_LOG_LEVEL": "log_level",
            "GPT_COMPILER_LOG_FILE": "log_file",
            "GPT_COMPILER_JSON_LOGS": ("json_logs", _parse_bool),
            "GPT_COMPILER_VERBOSE": ("verbose", _parse_bool),
        }

        for env_var, mapping in env_mappings.items():
            value = os.environ.get(env_var)
            if value:
                if isinstance(mapping, tuple):
                    attr, converter = mapping
                    try:
                        setattr(self, attr, converter(value))
                    except ValueError as e:
                        raise ConfigError(
                            f"Invalid value for {env_var}: {value!r}", setting=attr
                        ) from e
                else:
                    setattr(self, mapping, value)

    def validate(self) -> None:
        """Fail fast before any document is processed"""
        if not self.api_key:
            raise ConfigError(
                "OPENROUTER_API_KEY is not set in your environment or .env file",
                setting="api_key"
            )
        if not self.model:
            raise ConfigError("AI model must not be empty", setting="model")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive", setting="request_timeout")
        if self.max_concurrent < 0:
            raise ConfigError("max_concurrent must be >= 0", setting="max_concurrent")
        if not self.document_extension.startswith("."):
            raise ConfigError(
                "document_extension must start with '.'", setting="document_extension"
            )

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.verbose else self.log_level.upper()

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (API key masked)"""
        data = asdict(self)
        if data.get("api_key"):
            data["api_key"] = data["api_key"][:4] + "***"
        return data
