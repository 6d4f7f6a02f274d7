"""Unit tests for assemble command.

Tests for the CLI assemble command implementation.
"""

import json
from collections.abc import Callable
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner
from verity.cli.main import app

runner = CliRunner()

PROMETHEUS_PATCHED = {
    "image_ref": "quay.io/prometheus/prometheus:v3.9.1",
    "patched_registry": "ghcr.io/verity-org",
    "patched_repository": "prometheus/prometheus",
    "patched_tag": "v3.9.1-patched",
    "vuln_count": 5,
    "changed": True,
}


@pytest.fixture
def assemble_args(tmp_path: Path, config_file: Path, manifest_file: Path) -> list[str]:
    """Arguments pointing assemble at tmp_path."""
    return [
        "--config",
        str(config_file),
        "assemble",
        "--manifest",
        str(manifest_file),
        "--results-dir",
        str(tmp_path / "results"),
        "--output-dir",
        str(tmp_path / "charts"),
    ]


class TestAssembleCommand:
    """Tests for verity assemble command."""

    def test_assemble_help(self) -> None:
        result = runner.invoke(app, ["assemble", "--help"])

        assert result.exit_code == 0
        assert "--registry" in result.output
        assert "--results-dir" in result.output

    def test_releases_only_changed_chart(
        self,
        tmp_path: Path,
        assemble_args: list[str],
        write_record: Callable[..., Path],
    ) -> None:
        """Only the chart with a changed image is published."""
        write_record("prometheus.json", **PROMETHEUS_PATCHED)
        write_record(
            "alertmanager.json",
            image_ref="quay.io/prometheus/alertmanager:v0.28.0",
            changed=False,
        )

        result = runner.invoke(app, assemble_args)

        assert result.exit_code == 0, result.output
        assert "Published 1 chart(s)" in result.output
        published = json.loads((tmp_path / "charts" / "published-charts.json").read_text())
        assert [c["name"] for c in published] == ["prometheus"]
        assert published[0]["version"] == "28.9.1-patched"
        assert published[0]["oci_ref"] == "ghcr.io/verity-org/charts/prometheus:28.9.1-patched"
        assert published[0]["images"] == [
            {
                "original": "quay.io/prometheus/prometheus:v3.9.1",
                "patched": "ghcr.io/verity-org/prometheus/prometheus:v3.9.1-patched",
            }
        ]

    def test_writes_values_override(
        self,
        tmp_path: Path,
        assemble_args: list[str],
        write_record: Callable[..., Path],
    ) -> None:
        write_record("prometheus.json", **PROMETHEUS_PATCHED)

        result = runner.invoke(app, assemble_args)

        assert result.exit_code == 0, result.output
        values = yaml.safe_load(
            (tmp_path / "charts" / "prometheus" / "values-override.yaml").read_text()
        )
        assert values == {
            "server": {
                "image": {
                    "registry": "ghcr.io/verity-org",
                    "repository": "prometheus/prometheus",
                    "tag": "v3.9.1-patched",
                }
            }
        }

    def test_no_values(
        self,
        tmp_path: Path,
        assemble_args: list[str],
        write_record: Callable[..., Path],
    ) -> None:
        write_record("prometheus.json", **PROMETHEUS_PATCHED)

        result = runner.invoke(app, [*assemble_args, "--no-values"])

        assert result.exit_code == 0, result.output
        assert not (tmp_path / "charts" / "prometheus").exists()

    def test_nothing_changed(
        self,
        tmp_path: Path,
        assemble_args: list[str],
        write_record: Callable[..., Path],
    ) -> None:
        """Unchanged and resultless images publish nothing and write no file."""
        write_record(
            "prometheus.json",
            image_ref="quay.io/prometheus/prometheus:v3.9.1",
            patched_registry="ghcr.io/verity-org",
            patched_repository="prometheus/prometheus",
            patched_tag="v3.9.1-patched",
            changed=False,
        )

        result = runner.invoke(app, assemble_args)

        assert result.exit_code == 0, result.output
        assert "nothing to publish" in result.output
        assert not (tmp_path / "charts" / "published-charts.json").exists()

    def test_failures_do_not_fail_the_run(
        self,
        tmp_path: Path,
        assemble_args: list[str],
        write_record: Callable[..., Path],
    ) -> None:
        write_record("prometheus.json", **PROMETHEUS_PATCHED)
        write_record(
            "alertmanager.json",
            image_ref="quay.io/prometheus/alertmanager:v0.28.0",
            error="copa: no fixable packages",
        )

        result = runner.invoke(app, assemble_args)

        assert result.exit_code == 0, result.output
        assert "1 failed" in result.output

    def test_avoids_previously_published_version(
        self,
        tmp_path: Path,
        assemble_args: list[str],
        write_record: Callable[..., Path],
    ) -> None:
        """A chart already released as 28.9.1-patched gets 28.9.1-patched-1."""
        write_record("prometheus.json", **PROMETHEUS_PATCHED)
        charts = tmp_path / "charts"
        charts.mkdir()
        (charts / "published-charts.json").write_text(
            json.dumps([{"name": "prometheus", "version": "28.9.1-patched", "images": []}])
        )

        result = runner.invoke(app, assemble_args)

        assert result.exit_code == 0, result.output
        published = json.loads((charts / "published-charts.json").read_text())
        assert published[0]["version"] == "28.9.1-patched-1"

    def test_json_output(
        self,
        assemble_args: list[str],
        write_record: Callable[..., Path],
    ) -> None:
        write_record("prometheus.json", **PROMETHEUS_PATCHED)

        result = runner.invoke(app, [*assemble_args, "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["summary"]["released"] == 1
        assert data["summary"]["missing"] == 2
        assert [r["name"] for r in data["published"]] == ["prometheus"]
        assert data["published_path"].endswith("published-charts.json")

    def test_registry_option_overrides_config(
        self,
        tmp_path: Path,
        assemble_args: list[str],
        write_record: Callable[..., Path],
    ) -> None:
        write_record("prometheus.json", **PROMETHEUS_PATCHED)

        result = runner.invoke(app, [*assemble_args, "--registry", "registry.example.com/"])

        assert result.exit_code == 0, result.output
        published = json.loads((tmp_path / "charts" / "published-charts.json").read_text())
        assert published[0]["registry"] == "registry.example.com"

    def test_no_registry(self, tmp_path: Path, manifest_file: Path) -> None:
        empty_config = tmp_path / "empty.toml"
        empty_config.write_text("")

        result = runner.invoke(
            app, ["--config", str(empty_config), "assemble", "-m", str(manifest_file)]
        )

        assert result.exit_code == 1
        assert "No registry configured" in result.output

    def test_missing_manifest(self, tmp_path: Path, config_file: Path) -> None:
        result = runner.invoke(
            app,
            ["--config", str(config_file), "assemble", "-m", str(tmp_path / "missing.json")],
        )

        assert result.exit_code == 1
        assert "Manifest not found" in result.output

    def test_results_path_is_a_file(
        self, tmp_path: Path, config_file: Path, manifest_file: Path
    ) -> None:
        bogus = tmp_path / "results"
        bogus.write_text("")

        result = runner.invoke(
            app,
            ["--config", str(config_file), "assemble", "-m", str(manifest_file), "-r", str(bogus)],
        )

        assert result.exit_code == 1
        assert "Cannot read results directory" in result.output

    def test_version_survives_runs_without_the_chart(
        self,
        tmp_path: Path,
        assemble_args: list[str],
        write_record: Callable[..., Path],
    ) -> None:
        """A chart left out of one run still gets a fresh version later."""
        charts = tmp_path / "charts"
        nginx_patched = {
            "image_ref": "docker.io/library/nginx:1.25.3",
            "patched_registry": "ghcr.io/verity-org",
            "patched_repository": "library/nginx",
            "patched_tag": "1.25.3-patched",
            "changed": True,
        }
        runs = [
            [PROMETHEUS_PATCHED, nginx_patched],
            [nginx_patched],
            [PROMETHEUS_PATCHED],
        ]
        versions: list[dict[str, str]] = []

        for records in runs:
            for path in (tmp_path / "results").glob("*.json"):
                path.unlink()
            for record in records:
                write_record(f"{record['patched_repository'].replace('/', '_')}.json", **record)

            result = runner.invoke(app, assemble_args)

            assert result.exit_code == 0, result.output
            published = json.loads((charts / "published-charts.json").read_text())
            versions.append({c["name"]: c["version"] for c in published})

        assert versions == [
            {"prometheus": "28.9.1-patched", "standalone": "0.0.0-patched"},
            {"standalone": "0.0.0-patched-1"},
            {"prometheus": "28.9.1-patched-1"},
        ]
        history = json.loads((charts / "release-history.json").read_text())
        assert history["prometheus"] == ["28.9.1-patched", "28.9.1-patched-1"]

    def test_unreadable_history_fails(
        self,
        tmp_path: Path,
        assemble_args: list[str],
        write_record: Callable[..., Path],
    ) -> None:
        write_record("prometheus.json", **PROMETHEUS_PATCHED)
        charts = tmp_path / "charts"
        charts.mkdir()
        (charts / "release-history.json").write_text("{")

        result = runner.invoke(app, assemble_args)

        assert result.exit_code == 1
        assert not (charts / "published-charts.json").exists()
