"""MID Server version lookup against the ServiceNow instance."""

import re
from datetime import date
from typing import Any, Optional, Tuple, Union

import requests

from midprovisioner.constants import VERSION_QUERY_PATH
from midprovisioner.errors import ProvisionerError
from midprovisioner.errors_catalog import actionable_error
from midprovisioner.models import ProvisionerConfig, ResolvedVersion

# The release date is the last `_MM-DD-YYYY` group, optionally followed by a
# numeric build suffix, e.g. `vancouver-07-06-2023__patch6-01-30-2024_02-07-2024_1022`.
_RELEASE_DATE_RE = re.compile(
    r"_(?P<month>\d{2})-(?P<day>\d{2})-(?P<year>\d{4})(?:_\d+)?$"
)
# Whole value: `<product>_<channel>_<date>[_<build>]`, restricted to characters
# valid in a Docker tag since the release becomes the image tag and file name.
_RELEASE_RE = re.compile(
    r"(?P<product>[A-Za-z0-9][A-Za-z0-9.-]*)_(?P<channel>[A-Za-z0-9._-]+)"
    r"_(?P<month>\d{2})-(?P<day>\d{2})-(?P<year>\d{4})(?:_(?P<build>\d+))?"
)
MAX_RELEASE_LENGTH = 128


class VersionResolverService:
    """Asks the instance which MID Server release it expects."""

    def __init__(
        self,
        logger,
        console,
        requests_module=requests,
        timeout: Union[None, float, Tuple[float, Optional[float]]] = None,
    ):
        self.logger = logger
        self.console = console
        self.requests = requests_module
        self.timeout = timeout

    def build_query_url(self, config: ProvisionerConfig) -> str:
        return f"{config.instance_url}{VERSION_QUERY_PATH}"

    def fetch_release(self, config: ProvisionerConfig) -> str:
        url = self.build_query_url(config)
        self.logger.debug("Querying MID Server version: %s", url)

        try:
            response = self.requests.get(
                url,
                headers={"Accept": "application/json"},
                auth=(config.username, config.password),
                timeout=self.timeout,
            )
        except self.requests.RequestException as exc:
            raise ProvisionerError(
                actionable_error("instance_unreachable", instance=config.instance, reason=str(exc))
            ) from exc

        self.logger.debug("Version query returned HTTP %s", response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProvisionerError(actionable_error("invalid_json_response")) from exc

        return self.extract_release(payload)

    def extract_release(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            raise ProvisionerError("Failed to parse MID Server version from response.")

        result = payload.get("result")
        if result is None:
            raise ProvisionerError(actionable_error("version_not_found"))
        if not isinstance(result, list):
            raise ProvisionerError("Failed to parse MID Server version from response.")
        if not result:
            raise ProvisionerError(actionable_error("version_not_found"))

        entry = result[0]
        if not isinstance(entry, dict):
            raise ProvisionerError("Failed to parse MID Server version from response.")

        value = entry.get("value")
        if value is None or not isinstance(value, str):
            raise ProvisionerError(actionable_error("version_not_found"))

        release = value.strip()
        if not release or release == "null":
            raise ProvisionerError(actionable_error("version_not_found"))
        return release

    def parse_release(self, release: str) -> ResolvedVersion:
        match = _RELEASE_DATE_RE.search(release)
        if match is None:
            raise ProvisionerError(
                f"Failed to extract release date from version string: {release}. "
                "Expected a `_MM-DD-YYYY` date component."
            )

        if len(release) > MAX_RELEASE_LENGTH or _RELEASE_RE.fullmatch(release) is None:
            raise ProvisionerError(
                f"Unexpected MID Server version format: {release!r}. Expected "
                "`<product>_<channel>_<MM-DD-YYYY>` using only letters, digits, `.`, `-` and `_`."
            )

        month, day, year = match.group("month"), match.group("day"), match.group("year")
        try:
            date(int(year), int(month), int(day))
        except ValueError as exc:
            raise ProvisionerError(
                f"Failed to parse date components from release date: {month}-{day}-{year} "
                f"({exc})."
            ) from exc

        return ResolvedVersion(release=release, month=month, day=day, year=year)

    def resolve(self, config: ProvisionerConfig) -> ResolvedVersion:
        self.console.print(f"[blue]Querying {config.instance} for the MID Server version...[/blue]")
        release = self.fetch_release(config)
        self.logger.info(
            "Setting up a new MID Server for %s at version %s.", config.instance, release
        )

        resolved = self.parse_release(release)
        self.logger.info("Using release date: %s", resolved.release_date)
        return resolved
