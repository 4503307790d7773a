"""Configuration: schema, loading from env/file, and shared constants."""

from .schema import (
    DEFAULT_CONFIG,
    CompletionConfig,
    ConciergeConfig,
    GatingConfig,
    SamplingConfig,
    ToolsConfig,
)
from .loader import load_config
from .constants import (
    COMPLETION_DEFAULT_TIMEOUT_S,
    TOOL_DEFAULT_TIMEOUT_S,
    STREAM_LINE_PREFIX,
    STREAM_DONE_SENTINEL,
    UNAVAILABLE,
)

__all__ = [
    "DEFAULT_CONFIG", "CompletionConfig", "ConciergeConfig", "GatingConfig",
    "SamplingConfig", "ToolsConfig",
    "load_config",
    "COMPLETION_DEFAULT_TIMEOUT_S", "TOOL_DEFAULT_TIMEOUT_S",
    "STREAM_LINE_PREFIX", "STREAM_DONE_SENTINEL", "UNAVAILABLE",
]
