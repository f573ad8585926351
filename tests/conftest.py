"""Test configuration and fixtures."""

import os

import pytest

from tests.helpers import Member, build_docker_save, make_layer


@pytest.fixture(autouse=True)
def isolated_docker_config(tmp_path, monkeypatch):
    """Keep tests away from the developer's docker credentials and daemon."""
    config_dir = tmp_path / "docker-config"
    config_dir.mkdir()
    monkeypatch.setenv("DOCKER_CONFIG", str(config_dir))
    monkeypatch.delenv("LAYER_PLATFORM", raising=False)
    return config_dir


@pytest.fixture
def two_layer_image(tmp_path):
    """docker save tarball with two layers, each one directory and one file."""
    base = make_layer(
        [Member("etc", kind="dir", mode=0o755), Member("etc/hostname", b"layer-one\n")]
    )
    top = make_layer(
        [Member("app", kind="dir", mode=0o755), Member("app/run.sh", b"#!/bin/sh\n", mode=0o755)],
        compress=True,
    )
    return build_docker_save(tmp_path / "image.tar", [base, top])


@pytest.fixture
def one_layer_image(tmp_path):
    layer = make_layer([Member("a", b"x" * 10), Member("b", b"x" * 100), Member("c", b"x" * 100)])
    return build_docker_save(tmp_path / "single.tar", [layer])


# Pytest configuration
def pytest_configure(config):
    """Configure pytest markers and settings."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring a docker daemon"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless a daemon is declared available."""
    skip_integration = pytest.mark.skip(reason="Docker daemon not available")

    for item in items:
        if (
            "integration" in item.keywords
            and os.getenv("DOCKER_AVAILABLE", "false").lower() != "true"
        ):
            item.add_marker(skip_integration)
