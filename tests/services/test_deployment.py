import os
import subprocess

import pytest
import yaml

from midprovisioner.errors import ProvisionerError
from midprovisioner.models import ProvisionerConfig
from midprovisioner.services.deployment import DeploymentService


class DummyLogger:
    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


def _config():
    return ProvisionerConfig(
        instance="acme",
        display_name="acme-mid-01",
        username="mid.user",
        password="p@ss: #word",
    )


def _service():
    return DeploymentService(logger=DummyLogger(), console=DummyConsole())


def test_console_script_execs_into_named_container(tmp_path):
    path = _service().write_console_script(_config(), str(tmp_path))

    content = (tmp_path / "console.sh").read_text(encoding="utf-8")
    assert path == str(tmp_path / "console.sh")
    assert content.startswith("#!/usr/bin/env bash\n")
    assert "docker exec -u 0 -it acme_docker_linux_mid_server bash" in content
    if os.name == "posix":
        assert os.stat(path).st_mode & 0o100


def test_compose_file_declares_single_service(tmp_path):
    service = _service()
    service.write_compose_file(_config(), "acme_docker_linux_mid_server:latest", str(tmp_path))

    document = yaml.safe_load((tmp_path / "docker-compose.yaml").read_text(encoding="utf-8"))
    services = document["services"]
    assert list(services) == ["acme_docker_linux_mid_server"]

    mid = services["acme_docker_linux_mid_server"]
    assert mid["container_name"] == "acme_docker_linux_mid_server"
    assert mid["image"] == "acme_docker_linux_mid_server:latest"
    assert mid["restart"] == "unless-stopped"
    assert mid["volumes"] == ["./export:/opt/snc_mid_server/agent/export"]
    assert mid["environment"] == {
        "MID_INSTANCE_URL": "https://acme.service-now.com/",
        "MID_INSTANCE_USERNAME": "mid.user",
        "MID_INSTANCE_PASSWORD": "p@ss: #word",
        "MID_SERVER_NAME": "acme-mid-01",
    }


def test_compose_file_overwrites_previous_descriptor(tmp_path):
    (tmp_path / "docker-compose.yaml").write_text("services:\n  old: {}\n", encoding="utf-8")

    _service().write_compose_file(_config(), "acme_docker_linux_mid_server:latest", str(tmp_path))

    document = yaml.safe_load((tmp_path / "docker-compose.yaml").read_text(encoding="utf-8"))
    assert "old" not in document["services"]


def test_start_uses_detected_compose_command(tmp_path):
    calls = []

    def run_cmd(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, 0)

    compose_file = str(tmp_path / "docker-compose.yaml")
    _service().start(["docker-compose"], run_cmd, compose_file, str(tmp_path))

    assert calls[0][0] == ["docker-compose", "-f", compose_file, "up", "-d"]
    assert calls[0][1]["cwd"] == str(tmp_path)


def test_start_failure_is_fatal(tmp_path):
    def run_cmd(cmd, **_kwargs):
        raise ProvisionerError("Command failed (1): docker compose up -d")

    with pytest.raises(ProvisionerError, match="Failed to start the MID Server container"):
        _service().start(["docker", "compose"], run_cmd, "docker-compose.yaml", str(tmp_path))
