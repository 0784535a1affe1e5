"""Unit tests for actionflow.yaml schema validation."""

from pathlib import Path

import pytest

from actionflow.config.schema import (
    CONFIG_FILE_NAME,
    ActionflowConfig,
    ConfigParseError,
    ConfigValidationError,
    find_config,
    load_config,
    parse_config,
)
from actionflow.core.validation import DEFAULT_MAX_PATH_LENGTH


class TestParseConfig:
    """Tests for parse_config function."""

    def test_empty_uses_defaults(self) -> None:
        """An empty document yields the default configuration."""
        config = parse_config("")
        assert config == ActionflowConfig()
        assert config.orchestrator.max_concurrent_operations == 5
        assert config.orchestrator.operation_timeout == 30000
        assert config.validation.max_path_length == DEFAULT_MAX_PATH_LENGTH
        assert config.events.middleware is False

    def test_full_config(self) -> None:
        """Every section is read."""
        config = parse_config(
            """
orchestrator:
  max_concurrent_operations: 2
  operation_timeout: 5000
  retry_attempts: 1
  retry_delay: 0
validation:
  max_path_length: 120
  allowed_extensions: [".PY", ".md"]
  allow_absolute_paths: true
  blocked_patterns: ["^secrets/"]
events:
  history_size: 50
  middleware: true
errors:
  history_size: 10
"""
        )

        assert config.orchestrator.max_concurrent_operations == 2
        assert config.orchestrator.retry_delay == 0
        assert config.validation.max_path_length == 120
        assert config.validation.allowed_extensions == [".py", ".md"]
        assert config.validation.allow_absolute_paths is True
        assert config.validation.blocked_patterns[0].search("secrets/key.txt")
        assert config.events.history_size == 50
        assert config.events.middleware is True
        assert config.errors.history_size == 10

    def test_invalid_yaml(self) -> None:
        """Malformed YAML raises ConfigParseError."""
        with pytest.raises(ConfigParseError, match="Failed to parse YAML"):
            parse_config("orchestrator: [unclosed")

    def test_non_mapping(self) -> None:
        """The document must be a mapping."""
        with pytest.raises(ConfigParseError, match="must be a YAML mapping"):
            parse_config("- a\n- b\n")

    def test_section_must_be_mapping(self) -> None:
        """Sections must be mappings."""
        with pytest.raises(ConfigValidationError, match="orchestrator must be a mapping"):
            parse_config("orchestrator: 3")

    @pytest.mark.parametrize(
        "yaml_text, message",
        [
            ("orchestrator:\n  retry_attempts: 0", "orchestrator.retry_attempts"),
            ("orchestrator:\n  operation_timeout: true", "orchestrator.operation_timeout"),
            ("orchestrator:\n  retry_delay: -1", "orchestrator.retry_delay"),
            ("validation:\n  max_content_size: big", "validation.max_content_size"),
            ("validation:\n  allow_absolute_paths: 'yes'", "validation.allow_absolute_paths"),
            ("events:\n  history_size: 0", "events.history_size"),
            ("errors:\n  history_size: -5", "errors.history_size"),
        ],
    )
    def test_invalid_values(self, yaml_text: str, message: str) -> None:
        """Out-of-range or mistyped values name the offending key."""
        with pytest.raises(ConfigValidationError, match=message):
            parse_config(yaml_text)

    def test_invalid_extensions(self) -> None:
        """Extensions must be a non-empty list of dotted names."""
        with pytest.raises(ConfigValidationError, match="non-empty list"):
            parse_config("validation:\n  allowed_extensions: []")
        with pytest.raises(ConfigValidationError, match=r"allowed_extensions\[1\]"):
            parse_config("validation:\n  allowed_extensions: ['.py', 'md']")

    def test_invalid_blocked_pattern(self) -> None:
        """Blocked patterns must compile."""
        with pytest.raises(ConfigValidationError, match="not a valid regex"):
            parse_config("validation:\n  blocked_patterns: ['[unclosed']")


class TestLoadConfig:
    """Tests for load_config and find_config."""

    def test_load_config(self, tmp_path: Path) -> None:
        """A file on disk is parsed."""
        path = tmp_path / CONFIG_FILE_NAME
        path.write_text("orchestrator:\n  retry_attempts: 5\n")
        assert load_config(path).orchestrator.retry_attempts == 5

    def test_load_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises ConfigParseError."""
        with pytest.raises(ConfigParseError, match="Failed to read configuration file"):
            load_config(tmp_path / "missing.yaml")

    def test_find_config_in_parent(self, tmp_path: Path) -> None:
        """The search walks up from the start directory."""
        (tmp_path / CONFIG_FILE_NAME).write_text("")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config(nested) == (tmp_path / CONFIG_FILE_NAME).resolve()

    def test_find_config_missing(self, tmp_path: Path) -> None:
        """None when no file exists up the tree."""
        assert find_config(tmp_path) is None
