"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .defaults import DefaultConfig, build_engine_config, get_default_config


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def _load_yaml(self, filename: str) -> dict[str, Any]:
        """Load a YAML file from the config directory, empty if absent."""
        path = self.config_dir / filename

        if not path.exists():
            return {}

        with open(path) as f:
            loaded = yaml.safe_load(f)

        return loaded or {}

    def load_engine_config(self) -> dict[str, Any]:
        """Load site-wide engine overrides from engine.yaml."""
        return self._load_yaml("engine.yaml")

    def load_device_config(self, device_id: str) -> dict[str, Any]:
        """Load device-specific overrides from devices.yaml."""
        devices_config = self._load_yaml("devices.yaml")

        return devices_config.get("devices", {}).get(device_id, {})  # type: ignore[no-any-return]

    def merge_config(
        self,
        device_id: Optional[str] = None,
        run_overrides: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Per-run overrides (highest priority)
        2. Device-specific overrides
        3. Site engine.yaml on top of built-in defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)
        config = self._deep_merge(config, self.load_engine_config())

        if device_id:
            config = self._deep_merge(config, self.load_device_config(device_id))

        if run_overrides:
            config = self._deep_merge(config, run_overrides)

        return config

    def load(
        self,
        device_id: Optional[str] = None,
        run_overrides: Optional[dict[str, Any]] = None
    ) -> DefaultConfig:
        """Merge configuration and return it as typed parameters."""
        return build_engine_config(self.merge_config(device_id, run_overrides))

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name, _field in obj.__dataclass_fields__.items():
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
