"""Local tooling and configuration checks for midprovisioner."""

import re
import shutil
from typing import Callable, Iterable, List, Optional

from midprovisioner.constants import (
    PLACEHOLDER_DISPLAY_NAME,
    PLACEHOLDER_INSTANCE,
    PLACEHOLDER_PASSWORD,
    PLACEHOLDER_USERNAME,
    REQUIRED_TOOLS,
)
from midprovisioner.errors import ProvisionerError
from midprovisioner.errors_catalog import actionable_error
from midprovisioner.models import ProvisionerConfig

_INSTANCE_NAME_RE = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?")


class EnvironmentService:
    """Fails fast on missing tools and unset or placeholder settings."""

    # (attribute, environment variable, placeholder)
    REQUIRED_SETTINGS = (
        ("instance", "SERVICENOW_INSTANCE", PLACEHOLDER_INSTANCE),
        ("display_name", "MID_DISPLAY_NAME", PLACEHOLDER_DISPLAY_NAME),
        ("username", "MID_USERNAME", PLACEHOLDER_USERNAME),
        ("password", "MID_PASSWORD", PLACEHOLDER_PASSWORD),
    )

    def __init__(
        self,
        logger,
        console,
        which: Callable[[str], Optional[str]] = shutil.which,
        required_tools: Iterable[str] = REQUIRED_TOOLS,
    ):
        self.logger = logger
        self.console = console
        self.which = which
        self.required_tools = tuple(required_tools)

    def check_dependencies(self):
        for tool in self.required_tools:
            if self.which(tool) is None:
                raise ProvisionerError(actionable_error("missing_tool", tool=tool))
        self.logger.info("All required dependencies are installed.")

    def find_unset_settings(self, config: ProvisionerConfig) -> List[str]:
        unset = []
        for attribute, env_name, placeholder in self.REQUIRED_SETTINGS:
            value = getattr(config, attribute)
            if not value or value == placeholder:
                unset.append(env_name)
        return unset

    def validate_config(self, config: ProvisionerConfig):
        unset = self.find_unset_settings(config)
        for env_name in unset:
            message = f"{env_name} is not set or is still the default value."
            self.console.print(f"[yellow]Warning: {message}[/yellow]")
            self.logger.warning(message)

        if unset:
            raise ProvisionerError(
                actionable_error("default_configuration", names=", ".join(unset))
            )

        if not _INSTANCE_NAME_RE.fullmatch(config.instance):
            raise ProvisionerError(
                f"Invalid instance name '{config.instance}'. Use the bare instance name "
                "(for example `acme` for https://acme.service-now.com)."
            )

        self.logger.info("All required variables are set.")
