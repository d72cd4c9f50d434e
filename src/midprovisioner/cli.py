import logging
import os

import click
from rich.logging import RichHandler

from .constants import (
    CONNECT_TIMEOUT_SECONDS,
    DEFAULT_CONFIG_FILE,
    DOWNLOAD_TIMEOUT_SECONDS,
    PLACEHOLDER_DISPLAY_NAME,
    PLACEHOLDER_INSTANCE,
    PLACEHOLDER_PASSWORD,
    PLACEHOLDER_USERNAME,
)
from .core import MidProvisioner, ProvisionerError
from .models import ProvisionerConfig
from .services.config_loader import ConfigLoader


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option(
    "--instance",
    envvar="SERVICENOW_INSTANCE",
    required=False,
    help="ServiceNow instance name, e.g. `acme` for acme.service-now.com. [env: SERVICENOW_INSTANCE]",
)
@click.option(
    "--display-name",
    envvar="MID_DISPLAY_NAME",
    required=False,
    help="MID Server name shown in the instance. [env: MID_DISPLAY_NAME]",
)
@click.option(
    "--server-name",
    envvar="MID_SERVER_NAME",
    required=False,
    help="Container and image name (default: <instance>_docker_linux_mid_server). [env: MID_SERVER_NAME]",
)
@click.option(
    "--username",
    envvar="MID_USERNAME",
    required=False,
    help="Instance user with the mid_server role. [env: MID_USERNAME]",
)
@click.option(
    "--password",
    envvar="MID_PASSWORD",
    required=False,
    help="Password of the MID Server user. [env: MID_PASSWORD]",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option(
    "--work-dir",
    required=False,
    type=click.Path(file_okay=False),
    help="Directory holding console.sh, docker-compose.yaml and export/ (default: current directory).",
)
@click.option(
    "--connect-timeout",
    required=False,
    type=float,
    default=None,
    help=f"Connect timeout in seconds for instance and download requests (default: {CONNECT_TIMEOUT_SECONDS:.0f}).",
)
@click.option(
    "--download-timeout",
    required=False,
    type=float,
    default=None,
    help=f"Overall recipe download timeout in seconds (default: {DOWNLOAD_TIMEOUT_SECONDS:.0f}).",
)
@click.option(
    "--bundle-sha256",
    required=False,
    help="Expected SHA-256 checksum of the recipe archive.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=None,
    help="Validate settings, resolve the version and print the plan without building or starting anything.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
def main(
    instance,
    display_name,
    server_name,
    username,
    password,
    config,
    work_dir,
    connect_timeout,
    download_timeout,
    bundle_sha256,
    dry_run,
    verbose,
    log_file,
):
    """Build and start a ServiceNow MID Server container for an instance."""
    logger = logging.getLogger("midprovisioner")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except ProvisionerError as exc:
        raise click.ClickException(str(exc)) from exc

    instance = _resolve_option(instance, config_values, "instance", default=PLACEHOLDER_INSTANCE)
    display_name = _resolve_option(
        display_name, config_values, "display_name", default=PLACEHOLDER_DISPLAY_NAME
    )
    server_name = _resolve_option(server_name, config_values, "server_name")
    username = _resolve_option(username, config_values, "username", default=PLACEHOLDER_USERNAME)
    password = _resolve_option(password, config_values, "password", default=PLACEHOLDER_PASSWORD)
    work_dir = _resolve_option(work_dir, config_values, "work_dir")
    connect_timeout = float(
        _resolve_option(connect_timeout, config_values, "connect_timeout", default=CONNECT_TIMEOUT_SECONDS)
    )
    download_timeout = float(
        _resolve_option(download_timeout, config_values, "download_timeout", default=DOWNLOAD_TIMEOUT_SECONDS)
    )
    bundle_sha256 = _resolve_option(bundle_sha256, config_values, "bundle_sha256")
    dry_run = bool(_resolve_option(dry_run, config_values, "dry_run", default=False))
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    provisioner_config = ProvisionerConfig(
        instance=instance,
        display_name=display_name,
        username=username,
        password=password,
        server_name=server_name or None,
    )

    try:
        provisioner = MidProvisioner(
            config=provisioner_config,
            work_dir=work_dir,
            connect_timeout=connect_timeout,
            download_timeout=download_timeout,
            bundle_sha256=bundle_sha256,
            dry_run=dry_run,
            verbose=verbose,
        )
    except ProvisionerError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(provisioner.run())


if __name__ == "__main__":
    main()
