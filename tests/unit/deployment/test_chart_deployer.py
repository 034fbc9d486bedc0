"""Tests for chart loading, release naming and the chart deployer."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from conftest import package_chart, write_chart

from lube.config import ChartSettings
from lube.deployment.chart_deployer import (
    ChartDeployer,
    ReleaseAction,
    load_chart,
    release_name,
    render_packaged_values,
    substitute_domain,
)
from lube.deployment.shell_commands import CommandResult, HelmCommands, HelmRevision
from lube.errors import HelmCommandError, InvalidChartError, ReleaseError
from lube.infra.k8s import ClusterTarget


class TestReleaseName:
    """Tests for release_name."""

    @pytest.mark.parametrize(
        "path",
        [
            "/tmp/a/b/ertia-core.tgz",
            "/tmp/a/b/ertia-core",
            "/tmp/a/b/ertia-core.tar.gz",
            "/tmp/a/b/Ertia-Core.TGZ",
            "ertia-core",
        ],
    )
    def test_release_name(self, path: str) -> None:
        assert release_name(path) == "ertia-core"

    def test_accepts_path_objects(self) -> None:
        assert release_name(Path("/srv/charts/api.tgz")) == "api"


class TestLoadChart:
    """Tests for load_chart."""

    def test_directory_chart(self, tmp_path: Path) -> None:
        chart = load_chart(write_chart(tmp_path, version="2.0.1"))

        assert chart.name == "ertia-core"
        assert chart.version == "2.0.1"
        assert chart.api_version == "v2"

    def test_packaged_chart(self, tmp_path: Path) -> None:
        chart_dir = write_chart(tmp_path / "src")
        archive = package_chart(chart_dir, tmp_path)

        assert load_chart(archive).name == "ertia-core"

    def test_missing_chart(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidChartError):
            load_chart(tmp_path / "absent.tgz")

    def test_directory_without_chart_yaml(self, tmp_path: Path) -> None:
        (tmp_path / "empty").mkdir()

        with pytest.raises(InvalidChartError):
            load_chart(tmp_path / "empty")

    def test_archive_without_chart_yaml(self, tmp_path: Path) -> None:
        source = tmp_path / "src" / "broken"
        source.mkdir(parents=True)
        (source / "values.yaml").write_text("a: 1\n")
        archive = package_chart(source, tmp_path)

        with pytest.raises(InvalidChartError):
            load_chart(archive)

    def test_not_an_archive(self, tmp_path: Path) -> None:
        path = tmp_path / "chart.tgz"
        path.write_bytes(b"garbage")

        with pytest.raises(InvalidChartError):
            load_chart(path)

    def test_invalid_version(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidChartError) as excinfo:
            load_chart(write_chart(tmp_path, version="latest"))

        assert "failed validation" in excinfo.value.message

    def test_numeric_version_is_accepted(self, tmp_path: Path) -> None:
        """An unquoted numeric version such as 1.0 is read as a string."""
        chart_dir = tmp_path / "numeric"
        chart_dir.mkdir()
        (chart_dir / "Chart.yaml").write_text("apiVersion: v2\nname: numeric\nversion: 1.0\n")

        assert load_chart(chart_dir).version == "1.0"

    def test_library_chart_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidChartError):
            load_chart(write_chart(tmp_path, chart_type="library"))

    def test_unknown_api_version_rejected(self, tmp_path: Path) -> None:
        chart_dir = tmp_path / "old"
        chart_dir.mkdir()
        (chart_dir / "Chart.yaml").write_text("apiVersion: v3\nname: old\nversion: 1.0.0\n")

        with pytest.raises(InvalidChartError):
            load_chart(chart_dir)


class TestSubstituteDomain:
    """Tests for substitute_domain."""

    def test_replaces_placeholder(self, tmp_path: Path) -> None:
        chart_dir = write_chart(tmp_path, values="host: api.__DOMAIN__\ncdn: __DOMAIN__\n")

        assert substitute_domain(chart_dir, "example.com") is True
        assert (chart_dir / "values.yaml").read_text() == (
            "host: api.example.com\ncdn: example.com\n"
        )

    def test_without_values_file(self, tmp_path: Path) -> None:
        assert substitute_domain(write_chart(tmp_path), "example.com") is False

    def test_without_placeholder(self, tmp_path: Path) -> None:
        chart_dir = write_chart(tmp_path, values="host: fixed\n")

        assert substitute_domain(chart_dir, "example.com") is False

    def test_packaged_chart_values_are_rendered(self, tmp_path: Path) -> None:
        """Packaged charts get substituted values text; the archive stays as is."""
        archive = package_chart(write_chart(tmp_path / "src", values="h: __DOMAIN__\n"), tmp_path)
        before = archive.read_bytes()

        assert substitute_domain(archive, "example.com") is False
        assert render_packaged_values(archive, "example.com") == "h: example.com\n"
        assert archive.read_bytes() == before

    def test_packaged_chart_without_placeholder(self, tmp_path: Path) -> None:
        archive = package_chart(write_chart(tmp_path / "src", values="h: fixed\n"), tmp_path)

        assert render_packaged_values(archive, "example.com") is None

    def test_packaged_chart_without_values(self, tmp_path: Path) -> None:
        archive = package_chart(write_chart(tmp_path / "src"), tmp_path)

        assert render_packaged_values(archive, "example.com") is None


class TestChartDeployer:
    """Tests for ChartDeployer.deploy_path."""

    @pytest.fixture
    def helm(self) -> MagicMock:
        """Helm commands mock: release unknown, actions succeed."""
        helm = MagicMock(spec=HelmCommands)
        helm.last_revision.return_value = None
        helm.install.return_value = CommandResult(success=True)
        helm.upgrade.return_value = CommandResult(success=True)
        return helm

    @pytest.fixture
    def chart_dir(self, tmp_path: Path) -> Path:
        return write_chart(tmp_path, values="host: __DOMAIN__\n")

    @pytest.mark.asyncio
    async def test_installs_unknown_release(self, helm: MagicMock, chart_dir: Path) -> None:
        """A release that does not exist is installed into the namespace."""
        target = ClusterTarget(context="prod")
        deployer = ChartDeployer(helm, ChartSettings(timeout_seconds=120), target=target)

        action = await deployer.deploy_path(chart_dir, "ertia")

        assert action is ReleaseAction.INSTALL
        helm.install.assert_called_once()
        args, kwargs = helm.install.call_args
        assert args == ("ertia-core", chart_dir, "ertia")
        assert kwargs["timeout"] == "120s"
        assert kwargs["create_namespace"] is True
        assert kwargs["target"] is target
        helm.upgrade.assert_not_called()

    @pytest.mark.asyncio
    async def test_upgrades_existing_release(self, helm: MagicMock, chart_dir: Path) -> None:
        helm.last_revision.return_value = HelmRevision(revision=4, status="deployed")

        action = await ChartDeployer(helm).deploy_path(chart_dir, "ertia")

        assert action is ReleaseAction.UPGRADE
        helm.upgrade.assert_called_once()
        assert helm.upgrade.call_args.kwargs["timeout"] == "300s"
        helm.install.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_history_lookup_upgrades(
        self, helm: MagicMock, chart_dir: Path, captured_logs: list[str]
    ) -> None:
        """A lookup failure other than 'not found' assumes the release exists."""
        helm.last_revision.side_effect = HelmCommandError("helm history ertia-core failed")

        action = await ChartDeployer(helm).deploy_path(chart_dir, "ertia")

        assert action is ReleaseAction.UPGRADE
        assert any("treating it as existing" in message for message in captured_logs)

    @pytest.mark.asyncio
    async def test_default_namespace(self, helm: MagicMock, chart_dir: Path) -> None:
        """Entries without a namespace use the deployer's default."""
        await ChartDeployer(helm, default_namespace="platform").deploy_path(chart_dir, None)

        assert helm.install.call_args.args[2] == "platform"

    @pytest.mark.asyncio
    async def test_failure_raises_release_error(self, helm: MagicMock, chart_dir: Path) -> None:
        """A failed helm action carries helm's output."""
        helm.install.return_value = CommandResult(
            success=False, stderr="Error: timed out waiting for the condition", returncode=1
        )

        with pytest.raises(ReleaseError) as excinfo:
            await ChartDeployer(helm).deploy_path(chart_dir, "ertia")

        assert "timed out" in (excinfo.value.details or "")

    @pytest.mark.asyncio
    async def test_invalid_chart_never_reaches_helm(
        self, helm: MagicMock, tmp_path: Path
    ) -> None:
        """Validation happens before any helm call."""
        chart_dir = write_chart(tmp_path, version="not-semver")

        with pytest.raises(InvalidChartError):
            await ChartDeployer(helm).deploy_path(chart_dir, "ertia")

        helm.last_revision.assert_not_called()
        helm.install.assert_not_called()

    @pytest.mark.asyncio
    async def test_domain_substitution(self, helm: MagicMock, chart_dir: Path) -> None:
        await ChartDeployer(helm, ChartSettings(domain="example.com")).deploy_path(
            chart_dir, "ertia"
        )

        assert (chart_dir / "values.yaml").read_text() == "host: example.com\n"

    @pytest.mark.asyncio
    async def test_no_domain_leaves_values(self, helm: MagicMock, chart_dir: Path) -> None:
        await ChartDeployer(helm).deploy_path(chart_dir, "ertia")

        assert (chart_dir / "values.yaml").read_text() == "host: __DOMAIN__\n"

    @pytest.mark.asyncio
    async def test_missing_helm_binary(self, helm: MagicMock, chart_dir: Path) -> None:
        helm.install.side_effect = FileNotFoundError("helm")

        with pytest.raises(HelmCommandError):
            await ChartDeployer(helm).deploy_path(chart_dir, "ertia")

    @pytest.mark.asyncio
    async def test_domain_substitution_for_packaged_chart(
        self, helm: MagicMock, tmp_path: Path
    ) -> None:
        """A packaged chart receives the substituted values as an extra -f file."""
        archive = package_chart(write_chart(tmp_path / "src", values="host: __DOMAIN__\n"), tmp_path)
        seen: list[str] = []

        def _install(*args: object, value_files: list[Path], **kwargs: object) -> CommandResult:
            seen.extend(path.read_text() for path in value_files)
            return CommandResult(success=True)

        helm.install.side_effect = _install

        await ChartDeployer(helm, ChartSettings(domain="example.com")).deploy_path(archive, "ns1")

        assert seen == ["host: example.com\n"]
        assert not helm.install.call_args.kwargs["value_files"][0].exists()

    @pytest.mark.asyncio
    async def test_packaged_chart_without_domain_has_no_extra_values(
        self, helm: MagicMock, tmp_path: Path
    ) -> None:
        archive = package_chart(write_chart(tmp_path / "src", values="host: __DOMAIN__\n"), tmp_path)

        await ChartDeployer(helm).deploy_path(archive, "ns1")

        assert helm.install.call_args.kwargs["value_files"] == []
