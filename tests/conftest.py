"""Pytest configuration and fixtures."""

import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from helpers import (
    NGINX_DIGEST,
    REDIS_DIGEST,
    UNNAMED_DIGEST,
    FakePackageTool,
    FakeScanner,
    make_descriptor,
    write_layout,
)

from trivy_zarf.logging_setup import ROOT_LOGGER_NAME


@pytest.fixture
def oci_layout(tmp_path: Path) -> Callable[..., Path]:
    """Factory for OCI layouts under tmp_path."""

    def _make(manifests: list[dict[str, Any]], name: str = "images", **kwargs: Any) -> Path:
        return write_layout(tmp_path / name, manifests, **kwargs)

    return _make


@pytest.fixture
def three_image_layout(oci_layout: Callable[..., Path]) -> Path:
    """Layout with two annotated images and one identified only by digest."""
    return oci_layout(
        [
            make_descriptor(NGINX_DIGEST, "docker.io/library/nginx:1.25"),
            make_descriptor(REDIS_DIGEST, "docker.io/library/redis:7"),
            make_descriptor(UNNAMED_DIGEST),
        ]
    )


@pytest.fixture
def fake_scanner() -> FakeScanner:
    return FakeScanner()


@pytest.fixture
def fake_package_tool() -> FakePackageTool:
    return FakePackageTool()


@pytest.fixture(autouse=True)
def no_user_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Never pick up a config file from the real home directory."""
    monkeypatch.setattr("trivy_zarf.config.DEFAULT_CONFIG_PATH", tmp_path / "no-such-config.yaml")


@pytest.fixture(autouse=True)
def reset_package_logger() -> Iterator[None]:
    """Undo setup_logging so caplog sees records in every test."""
    yield
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
