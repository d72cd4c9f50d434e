import logging
import os
import subprocess
from typing import List, Optional

import requests
from rich.console import Console
from rich.table import Table

from .constants import (
    CONNECT_TIMEOUT_SECONDS,
    DOWNLOAD_TIMEOUT_SECONDS,
    EXPORT_DIR_MODE,
    EXPORT_DIR_NAME,
    RECIPE_DIR_NAME,
)
from .errors import ProvisionerError
from .models import ProvisionerConfig, ProvisionPlan, ResolvedVersion
from .services.archive import ArchiveService
from .services.command_runner import CommandRunner
from .services.deployment import DeploymentService
from .services.docker_runtime import DockerRuntimeService
from .services.download import DownloadService
from .services.environment import EnvironmentService
from .services.filesystem import FileSystemService
from .services.version_resolver import VersionResolverService

console = Console()
logger = logging.getLogger("midprovisioner")


class MidProvisioner:
    """Provisions one MID Server container, one gated step after another."""

    def __init__(
        self,
        config: ProvisionerConfig,
        work_dir: Optional[str] = None,
        connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
        download_timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
        bundle_sha256: Optional[str] = None,
        dry_run: bool = False,
        verbose: bool = False,
    ):
        self.config = config
        self.work_dir = os.path.abspath(work_dir or os.getcwd())
        self.recipe_dir = os.path.join(self.work_dir, RECIPE_DIR_NAME)
        self.export_dir = os.path.join(self.work_dir, EXPORT_DIR_NAME)
        self.bundle_sha256 = self._normalize_sha256(bundle_sha256, "--bundle-sha256")
        self.dry_run = dry_run
        self.verbose = verbose

        self.compose_cmd: Optional[List[str]] = None
        self.current_step_name: Optional[str] = None
        self.completed_steps: List[str] = []
        self.cleanup_warnings: List[str] = []

        self.environment_service = EnvironmentService(logger=logger, console=console)
        self.command_runner = CommandRunner(logger=logger)
        self.docker_runtime_service = DockerRuntimeService(
            logger=logger,
            console=console,
            subprocess_module=subprocess,
        )
        self.version_resolver = VersionResolverService(
            logger=logger,
            console=console,
            requests_module=requests,
            timeout=(connect_timeout, None),
        )
        self.download_service = DownloadService(
            logger=logger,
            console=console,
            requests_module=requests,
            connect_timeout=connect_timeout,
            download_timeout=download_timeout,
        )
        self.archive_service = ArchiveService()
        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.deployment_service = DeploymentService(logger=logger, console=console)

    def _normalize_sha256(self, value: Optional[str], option_name: str) -> Optional[str]:
        if value is None:
            return None

        clean_value = value.strip().lower()
        if len(clean_value) != 64 or any(c not in "0123456789abcdef" for c in clean_value):
            raise ProvisionerError(
                f"{option_name} must be a valid SHA-256 hash (64 hexadecimal characters)."
            )
        return clean_value

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.current_step_name = name
        logger.debug("Step started: %s", name)

        result = callback(*args, **kwargs)

        self.completed_steps.append(name)
        logger.debug("Step finished: %s", name)
        self.current_step_name = None
        return result

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        cwd: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        return self.command_runner.run(cmd, check=check, capture_output=capture_output, cwd=cwd)

    def _get_docker_compose_cmd(self) -> List[str]:
        return self.docker_runtime_service.get_docker_compose_cmd()

    def check_dependencies(self):
        self.environment_service.check_dependencies()

    def validate_configuration(self):
        self.environment_service.validate_config(self.config)

    def detect_compose(self) -> List[str]:
        self.compose_cmd = self._get_docker_compose_cmd()
        console.print(f"[green]Using command: {' '.join(self.compose_cmd)}[/green]")
        return self.compose_cmd

    def stop_existing_deployment(self) -> Optional[str]:
        return self.docker_runtime_service.stop_existing_deployment(
            self.compose_cmd,
            self._run_cmd,
            self.work_dir,
        )

    def resolve_version(self) -> ResolvedVersion:
        return self.version_resolver.resolve(self.config)

    def build_plan(self, version: ResolvedVersion) -> ProvisionPlan:
        image_name = self.config.server_name.lower()
        return ProvisionPlan(
            version=version,
            bundle_url=self.download_service.build_bundle_url(version),
            bundle_file=self.download_service.build_bundle_file_name(version),
            image_tag=f"{image_name}:{version.release}",
            latest_tag=f"{image_name}:latest",
        )

    def print_plan(self, plan: ProvisionPlan):
        table = Table(title="MID Server provisioning plan", show_header=False)
        table.add_column("Item", style="bold")
        table.add_column("Value")
        table.add_row("Instance", self.config.instance_url)
        table.add_row("MID Server", f"{self.config.display_name} ({self.config.server_name})")
        table.add_row("Release", plan.version.release)
        table.add_row("Release date", plan.version.release_date)
        table.add_row("Recipe URL", plan.bundle_url)
        table.add_row("Image tags", f"{plan.image_tag}, {plan.latest_tag}")
        table.add_row("Working directory", self.work_dir)
        console.print(table)

    def download_bundle(self, version: ResolvedVersion) -> str:
        return self.download_service.fetch_bundle(
            version,
            self.work_dir,
            expected_sha256=self.bundle_sha256,
        )

    def extract_bundle(self, bundle_path: str):
        console.print("[blue]Extracting MID Server recipe...[/blue]")
        self.archive_service.extract_bundle(bundle_path, self.recipe_dir)

    def prepare_export_dir(self):
        self.filesystem_service.ensure_dir(self.export_dir, mode=EXPORT_DIR_MODE)

    def build_image(self, plan: ProvisionPlan):
        self.docker_runtime_service.build_image(self._run_cmd, plan.image_tag, self.recipe_dir)

    def tag_image(self, plan: ProvisionPlan):
        self.docker_runtime_service.tag_image(self._run_cmd, plan.image_tag, plan.latest_tag)
        console.print(f"[green]Created Docker image: {plan.image_tag} and {plan.latest_tag}[/green]")

    def cleanup_build_artifacts(self, bundle_path: str) -> List[str]:
        logger.info("Cleaning up recipe files...")
        return self.filesystem_service.cleanup_paths([self.recipe_dir, bundle_path])

    def write_deployment_files(self, plan: ProvisionPlan) -> str:
        self.deployment_service.write_console_script(self.config, self.work_dir)
        return self.deployment_service.write_compose_file(
            self.config,
            plan.latest_tag,
            self.work_dir,
        )

    def start_container(self, compose_file: str):
        self.deployment_service.start(self.compose_cmd, self._run_cmd, compose_file, self.work_dir)

    def run(self) -> int:
        try:
            logger.info("Starting midprovisioner...")

            self._run_step("check_dependencies", self.check_dependencies)
            self._run_step("validate_configuration", self.validate_configuration)
            self._run_step("detect_compose", self.detect_compose)

            if self.dry_run:
                version = self._run_step("resolve_version", self.resolve_version)
                self.print_plan(self.build_plan(version))
                console.print("[yellow]Dry run: no containers or files were changed.[/yellow]")
                return 0

            self._run_step("stop_existing_deployment", self.stop_existing_deployment)
            version = self._run_step("resolve_version", self.resolve_version)
            plan = self.build_plan(version)

            bundle_path = self._run_step("download_bundle", self.download_bundle, version)
            self._run_step("extract_bundle", self.extract_bundle, bundle_path)
            self._run_step("prepare_export_dir", self.prepare_export_dir)
            self._run_step("build_image", self.build_image, plan)
            self._run_step("tag_image", self.tag_image, plan)

            self.cleanup_warnings = self.cleanup_build_artifacts(bundle_path)
            if self.cleanup_warnings:
                logger.warning(
                    "Cleanup finished with %s warning(s); the image was built.",
                    len(self.cleanup_warnings),
                )

            compose_file = self._run_step("write_deployment_files", self.write_deployment_files, plan)
            self._run_step("start_container", self.start_container, compose_file)
            return 0

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except ProvisionerError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error("Step '%s' failed: %s", self.current_step_name or "run", exc)
            return 1
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error in step '%s'", self.current_step_name or "run")
            return 1
