#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path
from typing import List, Optional

import yaml

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sequencer_app.config.defaults import build_engine_config
from sequencer_app.config.loader import ConfigLoader
from sequencer_app.config.validation import ConfigValidator, ValidationError


def validate_device_config(loader: ConfigLoader, device_id: Optional[str]) -> List[ValidationError]:
    """Validate merged configuration for one device (None for site defaults)."""
    config = loader.merge_config(device_id)
    errors = ConfigValidator.validate_config(config)

    if not errors:
        # Unknown keys only show up when building typed parameters
        build_engine_config(config)

    return errors


def configured_devices(loader: ConfigLoader) -> List[str]:
    """Device ids listed in devices.yaml."""
    path = loader.config_dir / "devices.yaml"
    if not path.exists():
        return []

    with open(path) as f:
        document = yaml.safe_load(f) or {}

    return sorted((document.get("devices") or {}).keys())


def main():
    """Main validation function."""
    config_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    loader = ConfigLoader.create(config_dir)
    print(f"🔍 Validating sequencer configuration in {loader.config_dir}...")

    all_valid = True

    for device_id in [None] + configured_devices(loader):
        label = device_id or "site defaults"
        print(f"\n🔧 Validating {label}...")

        try:
            errors = validate_device_config(loader, device_id)
        except (TypeError, yaml.YAMLError) as e:
            print(f"❌ Error loading {label}: {e}")
            all_valid = False
            continue

        if errors:
            print(f"❌ Found {len(errors)} validation errors:")
            for error in errors:
                print(f"  • {error.field}: {error.message} (value: {error.value})")
            all_valid = False
        else:
            print(f"✅ {label} configuration is valid")

    if all_valid:
        print("\n🎉 All configuration validation passed!")
        sys.exit(0)
    else:
        print("\n❌ Configuration validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
