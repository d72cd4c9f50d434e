"""Recipe bundle download with progress reporting and size validation."""

import hashlib
import os
import time
from typing import Optional

import requests
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from midprovisioner.constants import (
    BUNDLE_FILE_TEMPLATE,
    BUNDLE_NAME,
    BUNDLE_URL_TEMPLATE,
    CONNECT_TIMEOUT_SECONDS,
    DOWNLOAD_TIMEOUT_SECONDS,
    MIN_BUNDLE_SIZE,
)
from midprovisioner.errors import ProvisionerError
from midprovisioner.errors_catalog import actionable_error
from midprovisioner.models import ResolvedVersion


class DownloadService:
    """Builds the recipe URL, downloads it and checks the result."""

    def __init__(
        self,
        logger,
        console,
        requests_module=requests,
        connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
        download_timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
        min_size: int = MIN_BUNDLE_SIZE,
        clock=time.monotonic,
    ):
        self.logger = logger
        self.console = console
        self.requests = requests_module
        self.connect_timeout = connect_timeout
        self.download_timeout = download_timeout
        self.min_size = min_size
        self.clock = clock

    def build_bundle_url(self, version: ResolvedVersion) -> str:
        return BUNDLE_URL_TEMPLATE.format(
            bundle=BUNDLE_NAME,
            year=version.year,
            month=version.month,
            day=version.day,
            release=version.release,
        )

    def build_bundle_file_name(self, version: ResolvedVersion) -> str:
        return BUNDLE_FILE_TEMPLATE.format(bundle=BUNDLE_NAME, release=version.release)

    def download_file(
        self,
        url: str,
        dest_path: str,
        description: str = "Downloading...",
        expected_sha256: Optional[str] = None,
    ):
        self.logger.info("Downloading %s to %s", url, dest_path)

        hasher = hashlib.sha256() if expected_sha256 else None
        deadline = self.clock() + self.download_timeout

        try:
            with self.requests.get(
                url,
                stream=True,
                allow_redirects=True,
                timeout=(self.connect_timeout, self.download_timeout),
            ) as response:
                response.raise_for_status()
                total_size = int(response.headers.get("Content-Length", 0))

                os.makedirs(os.path.dirname(dest_path) or ".", exist_ok=True)

                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    TaskProgressColumn(),
                    "•",
                    TimeElapsedColumn(),
                    console=self.console,
                ) as progress:
                    task = progress.add_task(f"[cyan]{description}", total=total_size or None)
                    with open(dest_path, "wb") as file_obj:
                        for chunk in response.iter_content(chunk_size=8192):
                            if self.clock() > deadline:
                                raise ProvisionerError(
                                    actionable_error(
                                        "bundle_download_failed",
                                        url=url,
                                        reason=f"exceeded {self.download_timeout:.0f}s",
                                    )
                                )
                            if not chunk:
                                continue
                            file_obj.write(chunk)
                            if hasher:
                                hasher.update(chunk)
                            progress.update(task, advance=len(chunk))

        except ProvisionerError:
            self._discard(dest_path)
            raise
        except self.requests.RequestException as exc:
            self._discard(dest_path)
            raise ProvisionerError(
                actionable_error("bundle_download_failed", url=url, reason=str(exc))
            ) from exc

        if hasher:
            downloaded_sha = hasher.hexdigest()
            if downloaded_sha != expected_sha256:
                self._discard(dest_path)
                raise ProvisionerError(
                    f"Checksum mismatch for {description}. Expected {expected_sha256}, "
                    f"but got {downloaded_sha}."
                )

    def _discard(self, path: str):
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            self.logger.warning("Could not remove partial download %s: %s", path, exc)

    def verify_download(self, path: str):
        if not os.path.isfile(path):
            raise ProvisionerError(f"Downloaded file not found: {path}")

        size = os.path.getsize(path)
        if size < self.min_size:
            raise ProvisionerError(actionable_error("bundle_too_small", size=str(size)))
        self.logger.debug("Downloaded %s (%s bytes)", path, size)

    def fetch_bundle(
        self,
        version: ResolvedVersion,
        work_dir: str,
        expected_sha256: Optional[str] = None,
    ) -> str:
        url = self.build_bundle_url(version)
        dest_path = os.path.join(work_dir, self.build_bundle_file_name(version))
        self.console.print(f"[blue]Downloading MID Server recipe from: {url}[/blue]")

        self.download_file(
            url,
            dest_path,
            description="Downloading MID Server recipe...",
            expected_sha256=expected_sha256,
        )
        self.verify_download(dest_path)
        return dest_path
