import pytest

from midprovisioner.errors import ProvisionerError
from midprovisioner.models import ProvisionerConfig
from midprovisioner.services.environment import EnvironmentService


class RecordingLogger:
    def __init__(self):
        self.warnings = []

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, message, *args):
        self.warnings.append(message % args if args else message)


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


def _service(logger=None, which=None):
    return EnvironmentService(
        logger=logger or RecordingLogger(),
        console=DummyConsole(),
        which=which or (lambda tool: f"/usr/bin/{tool}"),
    )


def _config(**overrides):
    values = {
        "instance": "acme",
        "display_name": "acme-mid-01",
        "username": "mid.user",
        "password": "s3cret!",
    }
    values.update(overrides)
    return ProvisionerConfig(**values)


def test_check_dependencies_passes_when_tools_present():
    _service().check_dependencies()


def test_check_dependencies_names_missing_tool():
    service = _service(which=lambda _tool: None)

    with pytest.raises(ProvisionerError, match="docker is required but not installed"):
        service.check_dependencies()


def test_validate_config_accepts_real_values():
    _service().validate_config(_config())


def test_validate_config_warns_for_every_placeholder_before_aborting():
    logger = RecordingLogger()
    config = ProvisionerConfig(
        instance="InstanceName",
        display_name="MID-Server-Name",
        username="demo.mid",
        password="secret",
    )

    with pytest.raises(ProvisionerError) as exc_info:
        _service(logger=logger).validate_config(config)

    assert len(logger.warnings) == 4
    for env_name in ("SERVICENOW_INSTANCE", "MID_DISPLAY_NAME", "MID_USERNAME", "MID_PASSWORD"):
        assert any(env_name in warning for warning in logger.warnings)
        assert env_name in str(exc_info.value)


def test_validate_config_treats_empty_values_as_unset():
    logger = RecordingLogger()

    with pytest.raises(ProvisionerError):
        _service(logger=logger).validate_config(_config(username="", password="secret"))

    assert logger.warnings == [
        "MID_USERNAME is not set or is still the default value.",
        "MID_PASSWORD is not set or is still the default value.",
    ]


@pytest.mark.parametrize("instance", ["acme.service-now.com", "https://acme", "acme_dev"])
def test_validate_config_rejects_instance_urls(instance):
    with pytest.raises(ProvisionerError, match="Invalid instance name"):
        _service().validate_config(_config(instance=instance))
