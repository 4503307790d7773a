"""Configuration schema. Defaults point at a llama.cpp server and tool server on a Raspberry Pi."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from .constants import COMPLETION_DEFAULT_TIMEOUT_S, TOOL_DEFAULT_TIMEOUT_S


class CompletionConfig(BaseModel):
    """llama.cpp ``/completion`` endpoint."""
    url: str = Field(
        "http://192.168.1.98:8080/completion",
        description="Full URL of the completion endpoint (not the server root).",
    )
    api_key: str = Field("", description="Bearer token; empty for a local llama-server (no header sent).")
    timeout_s: float = Field(
        COMPLETION_DEFAULT_TIMEOUT_S,
        description="HTTP read timeout for one completion call, streaming or not.",
    )


class SamplingConfig(BaseModel):
    """Decoding parameters for one kind of completion call."""
    n_predict: int = Field(..., gt=0)
    temperature: float = Field(..., ge=0.0)
    cache_prompt: Optional[bool] = Field(
        None,
        description="Forwarded as llama.cpp's cache_prompt when set; omitted from the request when None.",
    )


class GatingConfig(BaseModel):
    """Keyword gate deciding whether a user turn is worth a tool-detection call.

    Matching is a plain substring test against the lowercased message, so
    ``"temp"`` also fires on ``"temperature"``.  Any exclusion wins over any keyword.
    """
    keywords: List[str] = Field(
        default_factory=lambda: [
            "status", "temperature", "temp", "memory", "cpu",
            "uptime", "network", "processes", "disk", "system info",
        ]
    )
    exclusions: List[str] = Field(default_factory=lambda: ["weather"])


class ToolsConfig(BaseModel):
    """Where tools get their data from."""
    backend: str = Field(
        "tool_server",
        description=(
            "'tool_server' (default): POST {name, arguments} to tool_server_url. "
            "'ssh': run shell commands on ssh_host through the ssh client. "
            "'local': run the same shell commands on this machine."
        ),
    )
    tool_server_url: str = "http://192.168.1.98:8765/tool"
    ssh_host: Optional[str] = None
    ssh_user: Optional[str] = None
    ssh_port: int = 22
    ssh_options: List[str] = Field(
        default_factory=lambda: ["-o", "BatchMode=yes", "-o", "ConnectTimeout=5"],
        description="Extra arguments passed to ssh before the destination.",
    )
    timeout_s: float = TOOL_DEFAULT_TIMEOUT_S

    @model_validator(mode="after")
    def _check_backend_fields(self) -> "ToolsConfig":
        if self.backend not in ("tool_server", "ssh", "local"):
            raise ValueError(
                f"Unknown tools backend {self.backend!r}. "
                "Supported: 'tool_server', 'ssh', 'local'."
            )
        if self.backend == "ssh" and not self.ssh_host:
            raise ValueError("tools.backend='ssh' requires 'ssh_host' to be set.")
        return self


class ConciergeConfig(BaseModel):
    """Top-level configuration."""
    completion: CompletionConfig = Field(default_factory=CompletionConfig)
    detection: SamplingConfig = Field(
        default_factory=lambda: SamplingConfig(n_predict=128, temperature=0.1)
    )
    tool_answer: SamplingConfig = Field(
        default_factory=lambda: SamplingConfig(n_predict=256, temperature=0.7, cache_prompt=False)
    )
    chat: SamplingConfig = Field(
        default_factory=lambda: SamplingConfig(n_predict=512, temperature=0.7)
    )
    stop: List[str] = Field(
        default_factory=lambda: ["<|im_end|>", "<|im_start|>", "\n<|"],
        description="Stop sequences for every streaming call; keeps the model from opening new turns.",
    )
    grammar_path: Optional[str] = Field(
        None,
        description="GBNF grammar for the detection call. None = bundled grammars/function.gbnf.",
    )
    gating: GatingConfig = Field(default_factory=GatingConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    assistant_name: str = "LFM2"
    system_prompt_intro: str = "a helpful assistant running on a Raspberry Pi"


DEFAULT_CONFIG = ConciergeConfig()
