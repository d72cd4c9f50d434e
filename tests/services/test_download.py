import hashlib

import pytest
from rich.console import Console

from midprovisioner.errors import ProvisionerError
from midprovisioner.models import ResolvedVersion
from midprovisioner.services.download import DownloadService


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class FakeResponse:
    def __init__(self, payload: bytes, error: Exception = None):
        self.payload = payload
        self.error = error
        self.headers = {"Content-Length": str(len(payload))}

    def raise_for_status(self):
        if self.error:
            raise self.error
        return None

    def iter_content(self, chunk_size=8192):
        for start in range(0, len(self.payload), chunk_size):
            yield self.payload[start : start + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class FakeRequestsModule:
    class RequestException(Exception):
        pass

    def __init__(self, payload: bytes = b"", status_error: bool = False):
        self.payload = payload
        self.status_error = status_error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        error = self.RequestException("404 Client Error: Not Found") if self.status_error else None
        return FakeResponse(self.payload, error=error)


VERSION = ResolvedVersion(release="acme_stable_03-14-2024", month="03", day="14", year="2024")


def _service(requests_module, **kwargs):
    return DownloadService(
        logger=DummyLogger(),
        console=Console(record=True),
        requests_module=requests_module,
        **kwargs,
    )


def test_build_bundle_url_interpolates_date_and_release():
    service = _service(FakeRequestsModule())

    assert service.build_bundle_url(VERSION) == (
        "https://install.service-now.com/glide/distribution/builds/package/app-signed/"
        "mid-linux-container-recipe/2024/03/14/"
        "mid-linux-container-recipe.acme_stable_03-14-2024.linux.x86-64.zip"
    )


def test_fetch_bundle_downloads_and_verifies(tmp_path):
    payload = b"x" * 20000
    requests_module = FakeRequestsModule(payload=payload)
    service = _service(requests_module, connect_timeout=30.0, download_timeout=300.0)

    path = service.fetch_bundle(VERSION, str(tmp_path))

    assert path == str(tmp_path / "mid-linux-container-recipe.acme_stable_03-14-2024.linux.x86-64.zip")
    assert (tmp_path / path).read_bytes() == payload
    assert requests_module.calls[0][1]["timeout"] == (30.0, 300.0)
    assert requests_module.calls[0][1]["stream"] is True


def test_fetch_bundle_rejects_undersized_file(tmp_path):
    service = _service(FakeRequestsModule(payload=b"x" * 5000))

    with pytest.raises(ProvisionerError, match=r"too small \(5000 bytes\)"):
        service.fetch_bundle(VERSION, str(tmp_path))


def test_download_http_error_status_is_fatal(tmp_path):
    service = _service(FakeRequestsModule(payload=b"", status_error=True))

    with pytest.raises(ProvisionerError, match="Failed to download MID Server recipe"):
        service.download_file("https://install.service-now.com/x.zip", str(tmp_path / "x.zip"))


def test_download_enforces_overall_deadline(tmp_path):
    ticks = iter([0.0, 1.0, 500.0, 1000.0])
    service = _service(
        FakeRequestsModule(payload=b"x" * 20000),
        download_timeout=300.0,
        clock=lambda: next(ticks),
    )

    with pytest.raises(ProvisionerError, match="exceeded 300s"):
        service.download_file("https://install.service-now.com/x.zip", str(tmp_path / "x.zip"))


def test_download_checksum_mismatch_removes_file(tmp_path):
    service = _service(FakeRequestsModule(payload=b"x" * 20000))
    dest = tmp_path / "bundle.zip"

    with pytest.raises(ProvisionerError, match="Checksum mismatch"):
        service.download_file(
            "https://install.service-now.com/x.zip",
            str(dest),
            expected_sha256="0" * 64,
        )

    assert not dest.exists()


def test_download_checksum_match_keeps_file(tmp_path):
    payload = b"x" * 20000
    service = _service(FakeRequestsModule(payload=payload))
    dest = tmp_path / "bundle.zip"

    service.download_file(
        "https://install.service-now.com/x.zip",
        str(dest),
        expected_sha256=hashlib.sha256(payload).hexdigest(),
    )

    assert dest.read_bytes() == payload


def test_verify_download_requires_file(tmp_path):
    with pytest.raises(ProvisionerError, match="Downloaded file not found"):
        _service(FakeRequestsModule()).verify_download(str(tmp_path / "missing.zip"))


def test_download_deadline_removes_partial_file(tmp_path):
    ticks = iter([0.0, 1.0, 2.0, 500.0, 1000.0])
    service = _service(
        FakeRequestsModule(payload=b"x" * 30000),
        download_timeout=300.0,
        clock=lambda: next(ticks),
    )
    dest = tmp_path / "bundle.zip"

    with pytest.raises(ProvisionerError, match="exceeded 300s"):
        service.download_file("https://install.service-now.com/x.zip", str(dest))

    assert not dest.exists()


def test_download_stream_error_removes_partial_file(tmp_path):
    class BrokenStreamResponse(FakeResponse):
        def iter_content(self, chunk_size=8192):
            yield self.payload[:chunk_size]
            raise FakeRequestsModule.RequestException("Connection broken: IncompleteRead")

    class BrokenStreamRequests(FakeRequestsModule):
        def get(self, url, **kwargs):
            return BrokenStreamResponse(self.payload)

    service = _service(BrokenStreamRequests(payload=b"x" * 30000))
    dest = tmp_path / "bundle.zip"

    with pytest.raises(ProvisionerError, match="IncompleteRead"):
        service.download_file("https://install.service-now.com/x.zip", str(dest))

    assert not dest.exists()
