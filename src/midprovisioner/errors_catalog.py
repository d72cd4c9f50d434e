"""Actionable error catalog for midprovisioner."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "missing_tool": {
        "what": "{tool} is required but not installed.",
        "next": "Install it, make sure it is on PATH, and try again.",
    },
    "default_configuration": {
        "what": "Required settings are unset or still use their placeholder values: {names}.",
        "next": "Set them on the command line, as environment variables, or in the config file.",
    },
    "compose_not_found": {
        "what": "No Docker Compose command found.",
        "next": "Install a recent version of Docker (`docker compose`) or `docker-compose`.",
    },
    "instance_unreachable": {
        "what": "Failed to connect to ServiceNow instance '{instance}': {reason}",
        "next": "Check your network connection and instance availability.",
    },
    "invalid_json_response": {
        "what": "Invalid JSON response received from ServiceNow.",
        "next": "Check your instance name and credentials.",
    },
    "version_not_found": {
        "what": "No MID Server version found in the response.",
        "next": "Verify the user has the mid_server role and can read sys_properties.",
    },
    "bundle_download_failed": {
        "what": "Failed to download MID Server recipe from {url}: {reason}",
        "next": "Check the URL and your network connection, then run again.",
    },
    "bundle_too_small": {
        "what": "Downloaded file is too small ({size} bytes) and may be incomplete.",
        "next": "Remove the partial file and run again.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
