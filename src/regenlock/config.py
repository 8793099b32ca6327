"""Configuration management with lazy validation."""

from pathlib import Path
from functools import cached_property

from regenlock.models.config import Config, DriftConfig, ExportConfig, GeneratorConfig
from regenlock.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "regenlock" / "config.yaml"


class ConfigManager:
    """
    Configuration manager with lazy validation.

    Loads the config file once and hands out sections on first access, so
    commands that never talk to the generator do not need a generator section.

    Example:
        >>> config_mgr = ConfigManager.load_default()
        >>> export_config = config_mgr.export
        >>> generator_config = config_mgr.generator  # Raises if not configured
    """

    def __init__(self, config: Config):
        self._config = config

    @classmethod
    def load_default(cls) -> "ConfigManager":
        """
        Load configuration from ~/.config/regenlock/config.yaml.

        A missing default file is not an error: defaults are used for every
        section that has them.

        Raises:
            PermissionError: If config file has wrong permissions
            ValueError: If config is invalid
        """
        if not DEFAULT_CONFIG_PATH.exists():
            logger.info("config_defaults_used", path=str(DEFAULT_CONFIG_PATH))
            return cls(Config())
        return cls.load_from_path(DEFAULT_CONFIG_PATH)

    @classmethod
    def load_from_path(cls, path: Path) -> "ConfigManager":
        """
        Load configuration from specific path.

        Args:
            path: Path to config.yaml file

        Returns:
            ConfigManager instance with loaded config

        Raises:
            FileNotFoundError: If config file doesn't exist
            PermissionError: If config file has wrong permissions
            ValueError: If config is invalid
        """
        logger.info("config_loading", path=str(path))

        try:
            config = Config.load(path)
            logger.info("config_loaded", path=str(path))
            return cls(config)

        except FileNotFoundError as e:
            logger.error("config_not_found", path=str(path), error=str(e))
            raise

        except PermissionError as e:
            logger.error("config_permission_error", path=str(path), error=str(e))
            raise

        except Exception as e:
            logger.error("config_validation_error", path=str(path), error=str(e))
            raise ValueError(f"Configuration validation failed: {e}") from e

    @cached_property
    def generator(self) -> GeneratorConfig:
        """
        Get generator configuration.

        Raises:
            ValueError: If no generator section is configured
        """
        if self._config.generator is None:
            logger.error("generator_config_missing")
            raise ValueError(
                "Generator configuration missing: add a 'generator:' section with an endpoint"
            )
        return self._config.generator

    @cached_property
    def export(self) -> ExportConfig:
        """Get export configuration (defaults if not specified)."""
        return self._config.export

    @cached_property
    def drift(self) -> DriftConfig:
        """Get drift configuration (defaults if not specified)."""
        return self._config.drift
