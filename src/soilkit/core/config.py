"""
Configuration system with validation and environment awareness.
Based on Pydantic Settings for robust configuration management.
"""
from pathlib import Path
import yaml
from pydantic import Field, ConfigDict
from pydantic_settings import BaseSettings
from typing import Optional, Literal, Union

from soilkit.core.constants import FLOATING_POINT_TOLERANCE
from soilkit.core.exceptions import ConfigurationError, ErrorContext


class PoreConfig(BaseSettings):
    """Configuration for pore compartments"""

    floating_point_tolerance: float = Field(
        FLOATING_POINT_TOLERANCE,
        gt=0,
        description="Absolute tolerance absorbing round-off in pore water writes (mm)"
    )

    model_config = ConfigDict(env_prefix="SOILKIT_PORE_", case_sensitive=False)


class SampleConfig(BaseSettings):
    """Configuration for soil sample unit conversion"""

    unsupported_unit_policy: Literal["raise", "passthrough"] = Field(
        "raise",
        description="Raise on a unit not valid for the quantity, or return the raw values"
    )
    nan_on_zero_divisor: bool = Field(
        True,
        description="Zero bulk density or thickness yields NaN instead of inf"
    )

    model_config = ConfigDict(env_prefix="SOILKIT_SAMPLE_", case_sensitive=False)


class LoggingConfig(BaseSettings):
    """Configuration for logging"""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    log_file: Optional[Path] = Field(None, description="Optional rotating log file")

    model_config = ConfigDict(env_prefix="SOILKIT_LOG_", case_sensitive=False)


class SoilkitConfig(BaseSettings):
    """Main configuration for soilkit"""

    # Component configurations
    pore: PoreConfig = Field(default_factory=PoreConfig)
    sample: SampleConfig = Field(default_factory=SampleConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        env_prefix="SOILKIT_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "SoilkitConfig":
        """Load configuration from YAML file"""
        yaml_path = Path(yaml_path)
        context = ErrorContext(component="config", operation="from_yaml", details={"path": str(yaml_path)})
        if not yaml_path.exists():
            raise ConfigurationError(f"Config file not found: {yaml_path}", context)

        with open(yaml_path, encoding="utf-8") as f:
            try:
                yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {yaml_path}: {e}", context) from e

        if not isinstance(yaml_config, dict):
            raise ConfigurationError(f"Config file {yaml_path} must hold a mapping", context)

        return cls(**yaml_config)

    def to_yaml(self, yaml_path: Union[str, Path]):
        """Save configuration to YAML file"""
        yaml_path = Path(yaml_path)
        yaml_path.parent.mkdir(parents=True, exist_ok=True)

        with open(yaml_path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)


# Global configuration instance
_config: Optional[SoilkitConfig] = None


def get_config(config_path: Optional[Path] = None) -> SoilkitConfig:
    """Get or create configuration instance (singleton pattern)"""
    global _config

    if _config is None:
        if config_path and config_path.exists():
            _config = SoilkitConfig.from_yaml(config_path)
        else:
            # Try to load from environment
            _config = SoilkitConfig()

    return _config


def set_config(config: Optional[SoilkitConfig]):
    """Set configuration (useful for testing)"""
    global _config
    _config = config
