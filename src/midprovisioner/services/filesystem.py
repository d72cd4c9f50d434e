"""Filesystem helpers for midprovisioner."""

import logging
import os
import shutil
import sys
from typing import Iterable, List, Optional

from rich.console import Console

from midprovisioner.errors import ProvisionerError


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def warn(self, message: str):
        self.console.print(f"[yellow]Warning: {message}[/yellow]")
        self.logger.warning(message)

    def set_permissions(self, path: str, mode: int) -> bool:
        if sys.platform == "win32":
            return True

        try:
            os.chmod(path, mode)
        except OSError as exc:
            self.warn(f"Failed to set permissions on {path}: {exc}")
            return False
        return True

    def ensure_dir(self, path: str, mode: Optional[int] = None):
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as exc:
            raise ProvisionerError(f"Failed to create directory {path}: {exc}") from exc

        if mode is not None:
            self.set_permissions(path, mode)

    def remove_path(self, path: str):
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
        self.logger.debug("Removed: %s", path)

    def cleanup_paths(self, paths: Iterable[str]) -> List[str]:
        """Remove each path, reporting failures as warnings.

        Returns the warning messages so callers can summarize them; a failed
        removal never raises.
        """
        warnings = []
        for path in paths:
            if not os.path.lexists(path):
                continue
            try:
                self.remove_path(path)
            except OSError as exc:
                message = f"Could not remove {path}: {exc}"
                self.warn(message)
                warnings.append(message)
        return warnings
