"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from verity.models.manifest import DiscoveryManifest


@pytest.fixture
def manifest_data() -> dict[str, Any]:
    """Discovery manifest as written by the discovery stage."""
    prometheus = {
        "registry": "quay.io",
        "repository": "prometheus/prometheus",
        "tag": "v3.9.1",
        "path": "server.image",
    }
    alertmanager = {
        "registry": "quay.io",
        "repository": "prometheus/alertmanager",
        "tag": "v0.28.0",
        "path": "alertmanager.image",
    }
    nginx = {
        "registry": "docker.io",
        "repository": "library/nginx",
        "tag": "1.25.3",
        "path": "nginx.image",
    }
    return {
        "charts": [
            {
                "name": "prometheus",
                "version": "28.9.1",
                "repository": "oci://ghcr.io/prometheus-community/charts",
                "images": [prometheus, alertmanager],
            },
            {
                "name": "standalone",
                "version": "0.0.0",
                "repository": "file://./charts/standalone",
                "images": [nginx],
            },
        ],
        "images": [prometheus, alertmanager, nginx],
    }


@pytest.fixture
def sample_manifest(manifest_data: dict[str, Any]) -> DiscoveryManifest:
    """Validated discovery manifest."""
    return DiscoveryManifest.model_validate(manifest_data)


@pytest.fixture
def manifest_file(tmp_path: Path, manifest_data: dict[str, Any]) -> Path:
    """Discovery manifest written to disk."""
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps(manifest_data))
    return path


@pytest.fixture
def write_record(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing one result record into tmp_path/results."""
    results_dir = tmp_path / "results"

    def _write(filename: str, **fields: Any) -> Path:
        results_dir.mkdir(parents=True, exist_ok=True)
        path = results_dir / filename
        path.write_text(json.dumps(fields))
        return path

    return _write


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """verity.toml pointing at a test registry."""
    path = tmp_path / "verity.toml"
    path.write_text('registry = "ghcr.io/verity-org"\n')
    return path


@pytest.fixture
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in tmp_path with no user config visible."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    return tmp_path
