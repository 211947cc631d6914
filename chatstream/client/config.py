"""
Configuration management for the chat client.

Settings come from three layers, later ones winning:
1. Field defaults below
2. An optional YAML file (``--config chat.yaml``)
3. Command line arguments that were actually given
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from ..streaming.session import FAILURE_NOTICE


class ChatConfig(BaseModel):
    """Configuration for the streaming chat client."""

    base_url: str = Field(
        default="http://localhost:8080",
        description="Generation service base URL"
    )
    stream_path: str = Field(
        default="/generate/stream",
        description="Path of the streaming generation endpoint"
    )
    model: str = Field(
        default="qwen",
        min_length=1,
        description="Model name sent as model_name"
    )
    connect_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for the connection"
    )
    read_timeout: Optional[float] = Field(
        default=120.0,
        gt=0,
        description="Seconds to wait between chunks (None waits forever)"
    )
    refresh_per_second: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="Display refresh rate while streaming"
    )
    math_display: str = Field(
        default="latex",
        description="'latex' keeps math source, 'unicode' converts it for the terminal"
    )
    debug: bool = Field(
        default=False,
        description="Write debug logs to log_file"
    )
    log_file: str = Field(
        default="chatstream_debug.log",
        description="Debug log location"
    )
    failure_notice: str = Field(
        default=FAILURE_NOTICE,
        description="Message shown when the stream fails"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip('/')

    @field_validator('stream_path')
    @classmethod
    def ensure_leading_slash(cls, v: str) -> str:
        return v if v.startswith('/') else '/' + v

    @field_validator('math_display')
    @classmethod
    def validate_math_display(cls, v: str) -> str:
        v = v.lower()
        if v not in ('latex', 'unicode'):
            raise ValueError(f"math_display must be 'latex' or 'unicode', got {v!r}")
        return v

    @property
    def stream_url(self) -> str:
        return f"{self.base_url}{self.stream_path}"

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'ChatConfig':
        """Load configuration from a YAML file.

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the YAML is empty or invalid
        """
        return cls(**load_yaml_config(yaml_path))

    @classmethod
    def from_args(cls, args) -> 'ChatConfig':
        """Create config from parsed command line arguments."""
        config_path = getattr(args, 'config', None)
        base = cls.from_yaml(config_path) if config_path else cls()
        return base.merge_cli_args(
            base_url=getattr(args, 'base_url', None),
            model=getattr(args, 'model', None),
            math_display=getattr(args, 'math', None),
            debug=getattr(args, 'debug', None) or None,
            log_file=getattr(args, 'log_file', None),
        )

    def merge_cli_args(self, **kwargs) -> 'ChatConfig':
        """Return a copy with every non-None keyword applied on top."""
        overrides = {k: v for k, v in kwargs.items() if v is not None}
        data = self.model_dump()
        data.update(overrides)
        return ChatConfig(**data)


def load_yaml_config(yaml_path: str) -> Dict[str, Any]:
    """Load a YAML mapping from ``yaml_path``."""
    path = Path(yaml_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {yaml_path}: {e}")

    if data is None:
        raise ValueError(f"Empty or invalid YAML file: {yaml_path}")
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top of {yaml_path}")

    return data
