"""
Configuration management for dep-lens.

Settings are read from defaults, then the first config file found in the
standard locations, then environment variables.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console

console = Console(stderr=True)


@dataclass
class DisplayConfig:
    """Terminal output configuration."""

    max_depth: int = 0
    color: bool = True
    show_summary: bool = True
    show_unrecognized: bool = True


@dataclass
class InputConfig:
    """Where dependency records are read from."""

    default_path: str = "dependencies.json"


@dataclass
class ProvenanceConfig:
    """Provenance parsing and chain walking configuration."""

    extra_lockfile_prefixes: List[str] = field(default_factory=list)
    max_walk_depth: int = 50


@dataclass
class NetworkConfig:
    """Network and registry configuration."""

    user_agent: str = "dep-lens/1.0.0 (Dependency Inspector)"
    registry_urls: Dict[str, str] = field(
        default_factory=lambda: {
            "npm": "https://registry.npmjs.org",
            "pypi": "https://pypi.org/pypi",
            "rubygems": "https://rubygems.org",
        }
    )
    timeout_seconds: float = 30.0
    rate_limit: float = 10.0
    max_concurrent: int = 10


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "WARNING"
    enable_json: bool = True


@dataclass
class ComprehensiveConfig:
    """Main configuration containing all subsections."""

    display: DisplayConfig = field(default_factory=DisplayConfig)
    input: InputConfig = field(default_factory=InputConfig)
    provenance: ProvenanceConfig = field(default_factory=ProvenanceConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def registry_urls(self) -> Dict[str, str]:
        return self.network.registry_urls

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_SECTIONS = ("display", "input", "provenance", "network", "logging")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Global configuration instance
_global_config: Optional[ComprehensiveConfig] = None


def _is_positive(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config_values(config: ComprehensiveConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    if not isinstance(config.display.max_depth, int) or config.display.max_depth < 0:
        errors.append("display.max_depth must be a non-negative integer")

    if not config.input.default_path:
        errors.append("input.default_path must not be empty")

    if not _is_positive_int(config.provenance.max_walk_depth):
        errors.append("provenance.max_walk_depth must be a positive integer")
    prefixes = config.provenance.extra_lockfile_prefixes
    if not isinstance(prefixes, list):
        errors.append("provenance.extra_lockfile_prefixes must be a list")
        prefixes = []
    for prefix in prefixes:
        if not isinstance(prefix, str) or not prefix.endswith(":"):
            errors.append(
                f"provenance.extra_lockfile_prefixes entry {prefix!r} must end with ':'"
            )

    if not _is_positive(config.network.timeout_seconds):
        errors.append("network.timeout_seconds must be positive")
    if not _is_positive(config.network.rate_limit):
        errors.append("network.rate_limit must be positive")
    if not _is_positive_int(config.network.max_concurrent):
        errors.append("network.max_concurrent must be a positive integer")
    if not isinstance(config.network.registry_urls, dict):
        errors.append("network.registry_urls must be a mapping")
    else:
        for registry, url in config.network.registry_urls.items():
            if not str(url).startswith(("http://", "https://")):
                errors.append(f"network.registry_urls.{registry} must be an http(s) URL")

    if str(config.logging.log_level).upper() not in _LOG_LEVELS:
        errors.append(f"logging.log_level must be one of {', '.join(_LOG_LEVELS)}")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                data = yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                return None
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )
        return None

    if not isinstance(data, dict):
        console.print(
            f"⚠️  Ignoring config {config_path}: top level must be a mapping",
            style="yellow",
        )
        return None
    return data


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".dep-lens.json",
        Path.cwd() / ".dep-lens.yaml",
        Path.cwd() / ".dep-lens.yml",
        Path.home() / ".config" / "dep-lens" / "config.json",
        Path.home() / ".config" / "dep-lens" / "config.yaml",
        Path.home() / ".dep-lens.json",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ComprehensiveConfig) -> None:
    """Load environment variable overrides."""

    def get_env_int(key: str) -> Optional[int]:
        try:
            return int(os.environ[key]) if key in os.environ else None
        except ValueError:
            console.print(f"⚠️  Invalid integer value for {key}, using default", style="yellow")
            return None

    def get_env_float(key: str) -> Optional[float]:
        try:
            return float(os.environ[key]) if key in os.environ else None
        except ValueError:
            console.print(f"⚠️  Invalid float value for {key}, using default", style="yellow")
            return None

    if (max_depth := get_env_int("DEP_LENS_MAX_DEPTH")) is not None:
        config.display.max_depth = max_depth
    if input_path := os.environ.get("DEP_LENS_INPUT"):
        config.input.default_path = input_path
    if (max_walk_depth := get_env_int("DEP_LENS_MAX_WALK_DEPTH")) is not None:
        config.provenance.max_walk_depth = max_walk_depth

    if timeout := get_env_float("DEP_LENS_TIMEOUT"):
        config.network.timeout_seconds = timeout
    if rate_limit := get_env_float("DEP_LENS_RATE_LIMIT"):
        config.network.rate_limit = rate_limit
    if max_concurrent := get_env_int("DEP_LENS_MAX_CONCURRENT"):
        config.network.max_concurrent = max_concurrent

    if log_level := os.environ.get("DEP_LENS_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()

    # https://no-color.org: any non-empty value disables color
    if os.environ.get("NO_COLOR"):
        config.display.color = False


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    if not isinstance(section_data, dict):
        console.print(
            f"⚠️  Config section {section_name} must be a mapping", style="yellow"
        )
        return

    for key, value in section_data.items():
        if hasattr(config, key):
            if isinstance(getattr(config, key), dict) and isinstance(value, dict):
                getattr(config, key).update(value)
            else:
                setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def load_config(config_path: Optional[Path] = None) -> ComprehensiveConfig:
    """Load configuration from file and environment."""
    config = ComprehensiveConfig()

    config_file = config_path or find_config_file()
    if config_file:
        file_config = load_config_file(config_file)
        if file_config:
            for section_name in _SECTIONS:
                if section_name in file_config:
                    apply_config_section(
                        getattr(config, section_name),
                        file_config[section_name],
                        section_name,
                    )
            for section_name in file_config:
                if section_name not in _SECTIONS:
                    console.print(
                        f"⚠️  Unknown config section: {section_name}", style="yellow"
                    )

    load_environment_overrides(config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")
        _restore_invalid_defaults(config, validation_errors)

    return config


def _restore_invalid_defaults(
    config: ComprehensiveConfig, validation_errors: List[str]
) -> None:
    defaults = ComprehensiveConfig()
    for error in validation_errors:
        section_name, _, rest = error.partition(".")
        key = rest.split(" ", 1)[0].split(".")[0]
        section = getattr(config, section_name, None)
        if section is not None and hasattr(section, key):
            setattr(section, key, getattr(getattr(defaults, section_name), key))


def get_config() -> ComprehensiveConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate a sample configuration with every setting at its default."""
    return json.dumps(ComprehensiveConfig().to_dict(), indent=2)
