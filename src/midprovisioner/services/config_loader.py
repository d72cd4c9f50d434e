"""Configuration loader for midprovisioner."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from midprovisioner.errors import ProvisionerError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "instance",
        "display_name",
        "server_name",
        "username",
        "password",
        "work_dir",
        "connect_timeout",
        "download_timeout",
        "bundle_sha256",
        "dry_run",
        "verbose",
        "log_file",
    }
    STRING_KEYS = {
        "instance",
        "display_name",
        "server_name",
        "username",
        "password",
        "work_dir",
        "bundle_sha256",
        "log_file",
    }
    NUMBER_KEYS = {"connect_timeout", "download_timeout"}
    FLAG_KEYS = {"dry_run", "verbose"}

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise ProvisionerError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ProvisionerError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ProvisionerError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise ProvisionerError(f"Unknown configuration keys: {unknown_list}")

        self._validate_types(parsed, config_path)
        return {key: value for key, value in parsed.items() if value is not None}

    def _validate_types(self, parsed: Dict[str, Any], config_path: str):
        for key, value in parsed.items():
            if value is None:
                continue
            if key in self.STRING_KEYS and not isinstance(value, str):
                # Unquoted YAML like `password: 12345` or `password: yes` loses its text form.
                raise ProvisionerError(
                    f"Config key '{key}' in '{config_path}' must be a string; "
                    "quote the value in the YAML file."
                )
            if key in self.NUMBER_KEYS and (
                isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0
            ):
                raise ProvisionerError(
                    f"Config key '{key}' in '{config_path}' must be a positive number of seconds."
                )
            if key in self.FLAG_KEYS and not isinstance(value, bool):
                raise ProvisionerError(
                    f"Config key '{key}' in '{config_path}' must be true or false."
                )
