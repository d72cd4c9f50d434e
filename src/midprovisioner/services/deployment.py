"""Deployment descriptor generation and container start for midprovisioner."""

import os
import stat
from typing import Any, Callable, Dict, List

import yaml

from midprovisioner.constants import (
    COMPOSE_FILE_NAME,
    CONSOLE_SCRIPT_NAME,
    CONTAINER_EXPORT_DIR,
    EXPORT_DIR_NAME,
)
from midprovisioner.errors import ProvisionerError
from midprovisioner.models import ProvisionerConfig


class DeploymentService:
    """Writes console.sh and docker-compose.yaml, then starts the container."""

    def __init__(self, logger, console):
        self.logger = logger
        self.console = console

    def render_console_script(self, config: ProvisionerConfig) -> str:
        return f"#!/usr/bin/env bash\n\ndocker exec -u 0 -it {config.server_name} bash\n"

    def build_compose_document(self, config: ProvisionerConfig, image: str) -> Dict[str, Any]:
        return {
            "services": {
                config.server_name: {
                    "container_name": config.server_name,
                    "image": image,
                    "restart": "unless-stopped",
                    "volumes": [f"./{EXPORT_DIR_NAME}:{CONTAINER_EXPORT_DIR}"],
                    "environment": {
                        "MID_INSTANCE_URL": config.instance_url,
                        "MID_INSTANCE_USERNAME": config.username,
                        "MID_INSTANCE_PASSWORD": config.password,
                        "MID_SERVER_NAME": config.display_name,
                    },
                }
            }
        }

    def render_compose(self, config: ProvisionerConfig, image: str) -> str:
        return yaml.safe_dump(
            self.build_compose_document(config, image),
            default_flow_style=False,
            sort_keys=False,
        )

    def _write(self, path: str, content: str):
        try:
            with open(path, "w", encoding="utf-8", newline="\n") as file_obj:
                file_obj.write(content)
        except OSError as exc:
            raise ProvisionerError(f"Failed to write {path}: {exc}") from exc

    def write_console_script(self, config: ProvisionerConfig, work_dir: str) -> str:
        path = os.path.join(work_dir, CONSOLE_SCRIPT_NAME)
        self._write(path, self.render_console_script(config))
        try:
            os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR)
        except OSError as exc:
            self.logger.warning("Could not make %s executable: %s", path, exc)
        return path

    def write_compose_file(self, config: ProvisionerConfig, image: str, work_dir: str) -> str:
        path = os.path.join(work_dir, COMPOSE_FILE_NAME)
        self._write(path, self.render_compose(config, image))
        return path

    def start(self, compose_cmd: List[str], run_cmd: Callable, compose_file: str, work_dir: str):
        try:
            run_cmd(compose_cmd + ["-f", compose_file, "up", "-d"], check=True, cwd=work_dir)
        except ProvisionerError as exc:
            raise ProvisionerError(f"Failed to start the MID Server container. {exc}") from exc
        self.console.print(
            "[green]Your MID Server will start shortly. Do not forget to validate it![/green]"
        )
