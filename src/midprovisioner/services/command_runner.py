"""Subprocess execution service for midprovisioner."""

import subprocess
from typing import List, Optional

from midprovisioner.errors import ProvisionerError


class CommandRunner:
    """Runs external commands with consistent error handling."""

    def __init__(self, logger, default_timeout: Optional[float] = None):
        self.logger = logger
        self.default_timeout = default_timeout

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        timeout: Optional[float] = None,
        cwd: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout

        try:
            result = subprocess.run(
                cmd,
                text=True,
                capture_output=capture_output,
                timeout=effective_timeout,
                cwd=cwd,
            )
        except FileNotFoundError as exc:
            raise ProvisionerError(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ProvisionerError(
                f"Command timed out after {effective_timeout}s: {cmd_str}"
            ) from exc
        except Exception as exc:
            raise ProvisionerError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").strip() if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{stderr}"

        if check:
            raise ProvisionerError(message)

        self.logger.debug(message)
        return result
