"""Docker runtime services for midprovisioner."""

import os
import subprocess
from typing import Callable, List, Optional

from midprovisioner.constants import COMPOSE_FILE_NAMES
from midprovisioner.errors import ProvisionerError
from midprovisioner.errors_catalog import actionable_error


class DockerRuntimeService:
    """Manages docker compose detection, image builds and deployment teardown."""

    COMPOSE_CANDIDATES = (["docker", "compose"], ["docker-compose"])

    def __init__(self, logger, console, subprocess_module=subprocess):
        self.logger = logger
        self.console = console
        self.subprocess = subprocess_module

    def get_docker_compose_cmd(self) -> List[str]:
        for candidate in self.COMPOSE_CANDIDATES:
            try:
                self.subprocess.run(candidate + ["version"], check=True, capture_output=True)
            except (self.subprocess.CalledProcessError, OSError):
                self.logger.debug("'%s' is not available.", " ".join(candidate))
                continue
            self.logger.info("'%s' command is available.", " ".join(candidate))
            return list(candidate)

        raise ProvisionerError(actionable_error("compose_not_found"))

    def find_existing_descriptor(self, work_dir: str) -> Optional[str]:
        for file_name in COMPOSE_FILE_NAMES:
            path = os.path.join(work_dir, file_name)
            if os.path.isfile(path):
                return path
        return None

    def stop_existing_deployment(
        self,
        compose_cmd: List[str],
        run_cmd: Callable,
        work_dir: str,
    ) -> Optional[str]:
        descriptor = self.find_existing_descriptor(work_dir)
        if descriptor is None:
            self.logger.debug("No previous deployment descriptor in %s", work_dir)
            return None

        self.console.print("[blue]Shutting down the existing MID Server container...[/blue]")
        try:
            run_cmd(compose_cmd + ["-f", descriptor, "down"], check=True, cwd=work_dir)
        except ProvisionerError as exc:
            raise ProvisionerError(f"Failed to stop existing container. {exc}") from exc
        return descriptor

    def build_image(self, run_cmd: Callable, image_tag: str, recipe_dir: str):
        self.console.print("[blue]Building Docker image. This may take a few minutes...[/blue]")
        try:
            run_cmd(["docker", "build", "--tag", image_tag, recipe_dir], check=True)
        except ProvisionerError as exc:
            raise ProvisionerError(f"Failed to build the docker image. {exc}") from exc

    def tag_image(self, run_cmd: Callable, source_tag: str, target_tag: str):
        try:
            run_cmd(["docker", "tag", source_tag, target_tag], check=True, capture_output=True)
        except ProvisionerError as exc:
            raise ProvisionerError(f"Failed to create {target_tag} tag. {exc}") from exc
