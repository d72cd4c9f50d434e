"""Shared domain models for midprovisioner."""

from dataclasses import dataclass, field
from typing import Optional

from .constants import INSTANCE_URL_TEMPLATE


def derive_server_name(instance: str) -> str:
    return f"{instance}_docker_linux_mid_server"


@dataclass(frozen=True)
class ProvisionerConfig:
    """Operator-supplied settings, fixed for the whole run."""

    instance: str
    display_name: str
    username: str
    password: str = field(repr=False)
    server_name: Optional[str] = None

    def __post_init__(self):
        if not self.server_name:
            object.__setattr__(self, "server_name", derive_server_name(self.instance))

    @property
    def instance_url(self) -> str:
        return INSTANCE_URL_TEMPLATE.format(instance=self.instance)


@dataclass(frozen=True)
class ResolvedVersion:
    """MID Server release reported by the instance, split into its date parts."""

    release: str
    month: str
    day: str
    year: str

    @property
    def release_date(self) -> str:
        return f"{self.month}-{self.day}-{self.year}"

    @property
    def date_path(self) -> str:
        return f"{self.year}/{self.month}/{self.day}"


@dataclass(frozen=True)
class ProvisionPlan:
    version: ResolvedVersion
    bundle_url: str
    bundle_file: str
    image_tag: str
    latest_tag: str
