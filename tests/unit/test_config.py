"""Unit tests for configuration module."""

from unittest import mock

import pytest
from pydantic import ValidationError

from yzterm.config import (
    Config,
    ControllerTimeouts,
    ProgressConfig,
    SessionTimeouts,
    TimeoutConfig,
    config,
)


class TestSessionTimeouts:
    """Tests for SessionTimeouts model."""

    def test_default_values(self):
        """SessionTimeouts has correct defaults."""
        timeouts = SessionTimeouts()

        assert timeouts.keepalive == 60.0
        assert timeouts.stop_grace == 0.5

    def test_rejects_non_positive(self):
        with pytest.raises(ValidationError):
            SessionTimeouts(keepalive=0)
        with pytest.raises(ValidationError):
            SessionTimeouts(stop_grace=-1)


class TestControllerTimeouts:
    """Tests for ControllerTimeouts model."""

    def test_default_values(self):
        """ControllerTimeouts has correct defaults."""
        timeouts = ControllerTimeouts()

        assert timeouts.poll == 0.1
        assert timeouts.post_connect == 0.5
        assert timeouts.initial_listing == 0.8
        assert timeouts.auth_failure == 0.5

    def test_custom_values(self):
        """ControllerTimeouts accepts custom values."""
        timeouts = ControllerTimeouts(
            poll=0.05, post_connect=1.0, initial_listing=2.0, auth_failure=0.25
        )

        assert timeouts.poll == 0.05
        assert timeouts.post_connect == 1.0
        assert timeouts.initial_listing == 2.0
        assert timeouts.auth_failure == 0.25

    def test_rejects_zero_poll(self):
        with pytest.raises(ValidationError):
            ControllerTimeouts(poll=0)


class TestProgressConfig:
    """Tests for ProgressConfig model."""

    def test_default_values(self):
        progress = ProgressConfig()

        assert progress.tick_interval == 0.2
        assert progress.step == 10
        assert progress.cap == 90

    @pytest.mark.parametrize("field,value", [("step", 0), ("cap", 101), ("tick_interval", 0)])
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            ProgressConfig(**{field: value})


class TestTimeoutConfig:
    """Tests for TimeoutConfig model."""

    def test_nested_structure(self):
        """TimeoutConfig contains all timeout categories."""
        timeout_config = TimeoutConfig(
            session=SessionTimeouts(keepalive=30.0),
            controller=ControllerTimeouts(poll=0.2),
            progress=ProgressConfig(step=5),
        )

        assert timeout_config.session.keepalive == 30.0
        assert timeout_config.controller.poll == 0.2
        assert timeout_config.progress.step == 5


class TestConfig:
    """Tests for main Config class."""

    def test_timeout_config_accessible(self):
        """Config.timeouts provides access to all timeout settings."""
        assert config.timeouts is not None
        assert config.timeouts.session is not None
        assert config.timeouts.controller is not None
        assert config.timeouts.progress is not None

    def test_client_defaults(self):
        """Config names the external clients by their usual binaries."""
        fresh = Config(_env_file=None)
        assert fresh.SSH_BINARY == "ssh"
        assert fresh.SCP_BINARY == "scp"
        assert fresh.SSHPASS_BINARY == "sshpass"
        assert fresh.STRICT_HOST_KEY_CHECKING is False
        assert fresh.POST_CONNECT_COMMAND == "alias ls='ls --color=auto'\r"

    def test_env_overrides_timeouts(self):
        """Timing fields are read from the environment."""
        with mock.patch.dict(
            "os.environ",
            {"POLL_INTERVAL": "0.25", "KEEPALIVE_INTERVAL": "15", "PROGRESS_CAP": "95"},
        ):
            overridden = Config(_env_file=None)

        assert overridden.timeouts.controller.poll == 0.25
        assert overridden.timeouts.session.keepalive == 15.0
        assert overridden.timeouts.progress.cap == 95

    def test_invalid_env_timing_fails_on_access(self):
        with mock.patch.dict("os.environ", {"PROGRESS_STEP": "0"}):
            broken = Config(_env_file=None)

        with pytest.raises(ValidationError):
            broken.timeouts

    def test_validate_missing_clients(self):
        """validate_required() reports clients missing from PATH."""
        with mock.patch("yzterm.config.shutil.which", return_value=None):
            errors = Config(_env_file=None).validate_required()

        assert any("SSH_BINARY" in e for e in errors)
        assert any("SCP_BINARY" in e for e in errors)

    def test_validate_with_clients(self):
        """validate_required() passes when the clients are installed."""
        with mock.patch("yzterm.config.shutil.which", return_value="/usr/bin/ssh"):
            errors = Config(_env_file=None).validate_required()

        assert errors == []

    def test_validate_terminal_size(self):
        with mock.patch("yzterm.config.shutil.which", return_value="/usr/bin/ssh"):
            errors = Config(_env_file=None, TERMINAL_COLS=0).validate_required()

        assert errors == ["TERMINAL_COLS and TERMINAL_ROWS must be positive"]
