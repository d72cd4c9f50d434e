"""Recipe archive extraction for midprovisioner."""

import os
import shutil
import zipfile
from pathlib import Path

from midprovisioner.constants import RECIPE_BUILD_FILE
from midprovisioner.errors import ProvisionerError


class ArchiveService:
    """Encapsulates safe archive extraction logic."""

    def is_within_dir(self, base_dir: Path, candidate: Path) -> bool:
        try:
            return os.path.commonpath([str(base_dir), str(candidate)]) == str(base_dir)
        except ValueError:
            return False

    def safe_extract_zip(self, zip_path: str, destination_dir: str):
        base = Path(destination_dir).resolve()

        try:
            with zipfile.ZipFile(zip_path, "r") as zip_ref:
                for member in zip_ref.infolist():
                    normalized_name = member.filename.replace("\\", "/")
                    target_path = (base / normalized_name).resolve()

                    if not self.is_within_dir(base, target_path):
                        raise ProvisionerError(
                            f"Unsafe ZIP entry detected: `{member.filename}`. "
                            "Archive extraction aborted to prevent path traversal."
                        )

                    file_type = (member.external_attr >> 16) & 0o170000
                    if file_type == 0o120000:
                        raise ProvisionerError(
                            f"Unsafe ZIP entry detected: `{member.filename}` is a symbolic link."
                        )

                for member in zip_ref.infolist():
                    normalized_name = member.filename.replace("\\", "/")
                    target_path = (base / normalized_name).resolve()

                    if member.is_dir() or normalized_name.endswith("/"):
                        target_path.mkdir(parents=True, exist_ok=True)
                        continue

                    target_path.parent.mkdir(parents=True, exist_ok=True)
                    with zip_ref.open(member, "r") as src, open(target_path, "wb") as dst:
                        shutil.copyfileobj(src, dst)

                    # Keep executable bits so recipe entrypoint scripts still run.
                    mode = (member.external_attr >> 16) & 0o777
                    if mode:
                        os.chmod(target_path, mode)
        except zipfile.BadZipFile as exc:
            raise ProvisionerError(f"Failed to extract the recipe files: invalid ZIP archive {zip_path}") from exc
        except OSError as exc:
            raise ProvisionerError(f"Failed to extract the recipe files: {exc}") from exc

    def extract_bundle(self, zip_path: str, destination_dir: str) -> str:
        if os.path.exists(destination_dir):
            try:
                shutil.rmtree(destination_dir)
            except OSError as exc:
                raise ProvisionerError(
                    f"Failed to clear recipe directory {destination_dir}: {exc}"
                ) from exc

        try:
            os.makedirs(destination_dir, exist_ok=True)
        except OSError as exc:
            raise ProvisionerError(f"Failed to create recipe directory: {exc}") from exc

        self.safe_extract_zip(zip_path, destination_dir)

        build_file = os.path.join(destination_dir, RECIPE_BUILD_FILE)
        if not os.path.isfile(build_file):
            raise ProvisionerError(
                f"Extraction completed but {RECIPE_BUILD_FILE} is missing from {destination_dir}."
            )
        return build_file
