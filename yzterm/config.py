import functools
import shutil

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SessionTimeouts(BaseModel):
    """Timing configuration for live PTY sessions."""

    keepalive: float = 60.0
    stop_grace: float = 0.5

    @field_validator("keepalive", "stop_grace")
    @classmethod
    def validate_positive(cls, v: float, info) -> float:
        """Ensure timing values are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got {v}")
        return v


class ControllerTimeouts(BaseModel):
    """Timing configuration for the session controller."""

    poll: float = 0.1
    post_connect: float = 0.5
    initial_listing: float = 0.8
    auth_failure: float = 0.5

    @field_validator("poll", "post_connect", "initial_listing", "auth_failure")
    @classmethod
    def validate_positive(cls, v: float, info) -> float:
        """Ensure timing values are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got {v}")
        return v


class ProgressConfig(BaseModel):
    """Simulated transfer progress (scp reports none of its own)."""

    tick_interval: float = 0.2
    step: int = 10
    cap: int = 90

    @field_validator("tick_interval")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"tick_interval must be positive, got {v}")
        return v

    @field_validator("step", "cap")
    @classmethod
    def validate_percent(cls, v: int, info) -> int:
        if not 0 < v <= 100:
            raise ValueError(f"{info.field_name} must be within 1..100, got {v}")
        return v


class TimeoutConfig(BaseModel):
    """Centralized timing configuration."""

    session: SessionTimeouts = Field(default_factory=SessionTimeouts)
    controller: ControllerTimeouts = Field(default_factory=ControllerTimeouts)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)


class Config(BaseSettings):
    """
    Application configuration loaded from multiple sources.

    Priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # External clients
    SSH_BINARY: str = "ssh"
    SCP_BINARY: str = "scp"
    SSHPASS_BINARY: str = "sshpass"

    # Host key handling for the external clients
    STRICT_HOST_KEY_CHECKING: bool = False

    # Credential vault
    KEYCHAIN_SERVICE: str = "com.yzterm.ssh"
    PRESENCE_PROMPT: str = "Verify to access the SSH password"

    # Terminal defaults
    TERMINAL_TYPE: str = "xterm-256color"
    TERMINAL_COLS: int = 80
    TERMINAL_ROWS: int = 24
    READ_CHUNK_SIZE: int = 4096

    # Oldest output is trimmed once an undrained buffer grows past this
    MAX_BUFFER_CHARS: int = 2_000_000

    # Timing overrides from environment
    KEEPALIVE_INTERVAL: float = 60.0
    STOP_GRACE_PERIOD: float = 0.5
    POLL_INTERVAL: float = 0.1
    POST_CONNECT_DELAY: float = 0.5
    INITIAL_LISTING_DELAY: float = 0.8
    AUTH_FAILURE_DELAY: float = 0.5
    PROGRESS_TICK_INTERVAL: float = 0.2
    PROGRESS_STEP: int = 10
    PROGRESS_CAP: int = 90

    # Written to a fresh session once it connects; empty disables it
    POST_CONNECT_COMMAND: str = "alias ls='ls --color=auto'\r"

    @functools.cached_property
    def timeouts(self) -> TimeoutConfig:
        """Build TimeoutConfig from environment variables."""
        return TimeoutConfig(
            session=SessionTimeouts(
                keepalive=self.KEEPALIVE_INTERVAL,
                stop_grace=self.STOP_GRACE_PERIOD,
            ),
            controller=ControllerTimeouts(
                poll=self.POLL_INTERVAL,
                post_connect=self.POST_CONNECT_DELAY,
                initial_listing=self.INITIAL_LISTING_DELAY,
                auth_failure=self.AUTH_FAILURE_DELAY,
            ),
            progress=ProgressConfig(
                tick_interval=self.PROGRESS_TICK_INTERVAL,
                step=self.PROGRESS_STEP,
                cap=self.PROGRESS_CAP,
            ),
        )

    def validate_required(self) -> list[str]:
        """Validate required configuration."""
        errors = []
        if shutil.which(self.SSH_BINARY) is None:
            errors.append(f"SSH_BINARY not found on PATH: {self.SSH_BINARY}")
        if shutil.which(self.SCP_BINARY) is None:
            errors.append(f"SCP_BINARY not found on PATH: {self.SCP_BINARY}")
        if not self.KEYCHAIN_SERVICE:
            errors.append("KEYCHAIN_SERVICE is required")
        if self.TERMINAL_COLS <= 0 or self.TERMINAL_ROWS <= 0:
            errors.append("TERMINAL_COLS and TERMINAL_ROWS must be positive")
        return errors


config = Config()
