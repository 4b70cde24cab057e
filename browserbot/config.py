"""
Configuration management for BrowserBot.

Provides configuration dataclass and environment variable loading.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .types import RunOptions

# Load environment variables from .env file if present
load_dotenv()


PROVIDERS = ("openai", "azure")


def get_base_dir() -> Path:
    """Get the base directory for BrowserBot data."""
    return Path.home() / ".browserbot"


def get_runs_dir() -> Path:
    """Get the directory for run logs."""
    return get_base_dir() / "runs"


def is_local_endpoint(endpoint: str) -> bool:
    """Check whether an endpoint points at a local model server."""
    lowered = (endpoint or "").lower()
    return any(host in lowered for host in ("localhost", "127.0.0.1", "0.0.0.0"))


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes")


def _env_path(name: str) -> Optional[Path]:
    value = os.getenv(name)
    return Path(value).expanduser() if value else None


@dataclass
class AgentConfig:
    """Configuration for the browser agent."""

    # Provider settings
    provider: str = field(
        default_factory=lambda: os.getenv("BROWSERBOT_PROVIDER", "openai").lower()
    )

    # OpenAI-compatible endpoint (OpenAI, LM Studio, Ollama, ...)
    model_endpoint: str = field(
        default_factory=lambda: os.getenv(
            "BROWSERBOT_ENDPOINT",
            "http://127.0.0.1:1234/v1"
        )
    )
    model: str = field(
        default_factory=lambda: os.getenv(
            "BROWSERBOT_MODEL",
            "qwen2.5:7b"
        )
    )
    api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("BROWSERBOT_API_KEY")
    )

    # Azure OpenAI
    azure_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_API_KEY")
    )
    azure_endpoint: Optional[str] = field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_ENDPOINT")
    )
    azure_api_version: str = field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_API_VERSION", "2024-08-01-preview")
    )
    azure_deployment: str = field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_MODEL", "gpt-4o")
    )

    # Browser settings
    headless: bool = field(default_factory=lambda: _env_flag("BROWSERBOT_HEADLESS"))
    user_data_dir: Optional[Path] = field(
        default_factory=lambda: _env_path("CHROME_USER_DATA_DIR")
    )

    # Agent settings
    max_steps: int = 100
    max_failures: int = 3
    temperature: float = 0.7
    max_tokens: int = 4000
    max_tool_rounds: int = 10

    # Earlier messages sent with each turn (0 = stateless turns)
    history_window: int = 0
    max_message_chars: int = 60000

    # Timeouts
    request_timeout: int = 120
    navigation_timeout: int = 30000
    action_timeout: int = 10000

    # Debug mode - enables verbose logging (off by default)
    debug: bool = field(default_factory=lambda: _env_flag("BROWSERBOT_DEBUG"))

    @property
    def model_name(self) -> str:
        """Model or deployment name for display."""
        return self.azure_deployment if self.provider == "azure" else self.model

    @property
    def screenshots_dir(self) -> Path:
        """Directory for screenshots taken by the browser tools."""
        return get_base_dir() / "screenshots"

    def validate(self) -> None:
        """Check that the configured provider can be reached.

        Raises:
            ConfigurationError: If credentials or endpoints are missing
        """
        if self.provider not in PROVIDERS:
            raise ConfigurationError(
                f"Unknown provider '{self.provider}' (expected one of: {', '.join(PROVIDERS)})"
            )

        if self.provider == "azure":
            if not self.azure_api_key:
                raise ConfigurationError("AZURE_OPENAI_API_KEY not found in environment variables")
            if not self.azure_endpoint:
                raise ConfigurationError("AZURE_OPENAI_ENDPOINT not found in environment variables")
            return

        if not self.model_endpoint:
            raise ConfigurationError("BROWSERBOT_ENDPOINT is not set")
        if not self.model or not self.model.strip():
            raise ConfigurationError("BROWSERBOT_MODEL is not set")

        if not is_local_endpoint(self.model_endpoint) and not self.api_key:
            raise ConfigurationError(
                f"BROWSERBOT_API_KEY is required for remote endpoint {self.model_endpoint}"
            )

    def to_run_options(self) -> RunOptions:
        """Per-run knobs for BrowserAgent.run()."""
        return RunOptions(
            max_steps=self.max_steps,
            max_failures=self.max_failures,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

    @classmethod
    def from_cli_args(
        cls,
        max_steps: int = 100,
        max_failures: int = 3,
        headless: bool = False,
        model_endpoint: Optional[str] = None,
        model: Optional[str] = None,
        provider: Optional[str] = None,
        user_data_dir: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        debug: bool = False,
    ) -> "AgentConfig":
        """Create configuration from CLI arguments.

        Options left unset fall back to environment variables and defaults.
        """
        config = cls(
            max_steps=max_steps,
            max_failures=max_failures,
            temperature=DEFAULTS["temperature"] if temperature is None else temperature,
            max_tokens=max_tokens or DEFAULTS["max_tokens"],
        )
        if headless:
            config.headless = True
        if debug:
            config.debug = True
        if provider:
            config.provider = provider.lower()
        if model_endpoint:
            config.model_endpoint = model_endpoint
        if model:
            if config.provider == "azure":
                config.azure_deployment = model
            else:
                config.model = model
        if user_data_dir:
            config.user_data_dir = Path(user_data_dir).expanduser()
        return config


# Default configuration values for documentation
DEFAULTS = {
    "provider": "openai",
    "headless": False,
    "max_steps": 100,
    "max_failures": 3,
    "temperature": 0.7,
    "max_tokens": 4000,
    "max_tool_rounds": 10,
    "model_endpoint": "http://127.0.0.1:1234/v1",
    "model": "qwen2.5:7b",
    "navigation_timeout_ms": 30000,
    "action_timeout_ms": 10000,
}
