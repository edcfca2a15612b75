"""Integration tests for CLI commands.

Drives the click command tree with CliRunner. Anything that would reach
kubectl, kind or gcloud is patched at the command module.
"""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner
from mocks import FakeClusterTransport, FakeDetector
from mocks.manifests import CRD, WIDGET

from nebula_cli.bootstrap.state import BootstrapStage, BootstrapState
from nebula_cli.cluster.context import ClusterHandle
from nebula_cli.cluster.transport import CommandResult
from nebula_cli.errors import BootstrapAborted, ClusterNotReadyError
from nebula_cli.main import cli
from nebula_cli.rollout.applier import ApplyReport


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def write_manifests(path: str, *docs: dict) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(yaml.safe_dump_all(docs, sort_keys=False))


@pytest.mark.integration
class TestCLIBasicCommands:
    """Test basic CLI commands."""

    def test_cli_001_version(self, runner):
        """CLI-001: Version command works."""
        result = runner.invoke(cli, ["version"], obj={})

        assert result.exit_code == 0
        assert result.output.startswith("nebula ")

    def test_cli_002_help(self, runner):
        """CLI-002: Help lists every command."""
        result = runner.invoke(cli, ["--help"], obj={})

        assert result.exit_code == 0
        assert "Commands:" in result.output
        for command in ("bootstrap", "apply", "synth", "destroy", "config", "version"):
            assert command in result.output

    def test_cli_003_help_subcommand(self, runner):
        """CLI-003: Help for subcommands works."""
        for cmd in ("bootstrap", "apply", "synth", "destroy"):
            result = runner.invoke(cli, [cmd, "--help"], obj={})
            assert result.exit_code == 0, f"Help for {cmd} failed"

    def test_cli_004_unknown_command(self, runner):
        """CLI-004: Unknown command shows error."""
        result = runner.invoke(cli, ["nonexistent"], obj={})
        assert result.exit_code != 0

    def test_cli_005_missing_config_file(self, runner):
        """CLI-005: An explicit --config that does not exist is an error."""
        result = runner.invoke(cli, ["-c", "/nonexistent/config.yaml", "version"], obj={})

        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_cli_006_log_file(self, runner):
        """CLI-006: --log-file and NEBULA_LOG_FILE reach the logging setup."""
        with patch("nebula_cli.main.configure_logging") as configure:
            result = runner.invoke(cli, ["--log-file", "run.log", "-v", "version"], obj={})
            assert result.exit_code == 0, result.output
            configure.assert_called_once_with(level="debug", log_file="run.log", json_output=False)

            configure.reset_mock()
            result = runner.invoke(cli, ["version"], obj={}, env={"NEBULA_LOG_FILE": "env.log"})
            assert result.exit_code == 0, result.output
            assert configure.call_args.kwargs["log_file"] == "env.log"

    def test_cli_007_log_file_written(self, runner):
        """CLI-007: A log file is created under a missing directory."""
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["--log-file", "logs/nebula.log", "version"], obj={})

            assert result.exit_code == 0, result.output
            assert Path("logs/nebula.log").exists()


@pytest.mark.integration
class TestConfigShow:
    """Test nebula config show."""

    def test_sources(self, runner):
        """Test file and environment values are attributed to their source."""
        with runner.isolated_filesystem():
            Path("nebula.yaml").write_text("cluster_name: lab\n")
            result = runner.invoke(
                cli,
                ["-c", "nebula.yaml", "config", "show"],
                obj={},
                env={"NEBULA_CRD_TIMEOUT": "90"},
            )

        assert result.exit_code == 0
        assert "cluster_name: lab  (config file)" in result.output
        assert "crd_timeout: 90.0  (environment)" in result.output
        assert "gitops_application: argocd-apps  (default)" in result.output

    def test_json(self, runner):
        """Test --json emits the effective values."""
        with runner.isolated_filesystem():
            Path("nebula.yaml").write_text("{}\n")
            result = runner.invoke(cli, ["-c", "nebula.yaml", "config", "show", "--json"], obj={})

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["cluster_name"] == "nebula"
        assert "argocd" in data["workload_modules"]


@pytest.mark.integration
class TestApplyCommand:
    """Test nebula apply."""

    def test_no_manifests(self, runner):
        """Test an empty glob exits 1."""
        with runner.isolated_filesystem():
            with patch("nebula_cli.commands.apply.ToolDetector", FakeDetector):
                result = runner.invoke(cli, ["apply"], obj={})

        assert result.exit_code == 1
        assert "No manifest files found matching dist/*.k8s.yaml" in result.output

    def test_kubectl_missing(self, runner):
        """Test a missing kubectl exits 1 before reading manifests."""
        with runner.isolated_filesystem():
            with patch(
                "nebula_cli.commands.apply.ToolDetector",
                lambda: FakeDetector(missing="kubectl"),
            ):
                result = runner.invoke(cli, ["apply"], obj={})

        assert result.exit_code == 1
        assert "kubectl not found" in result.output

    def test_dry_run(self, runner):
        """Test a dry run applies each phase with --dry-run and skips waits."""
        transport = FakeClusterTransport()
        with runner.isolated_filesystem():
            write_manifests("dist/app.k8s.yaml", CRD, WIDGET)
            with patch("nebula_cli.commands.apply.ToolDetector", FakeDetector), patch(
                "nebula_cli.commands.apply.KubectlTransport", return_value=transport
            ):
                result = runner.invoke(cli, ["apply", "--dry-run"], obj={})

        assert result.exit_code == 0, result.output
        assert "Found 2 resource(s) in 1 file(s)" in result.output
        assert "✓ Dry run complete" in result.output
        assert transport.applied_kinds() == [["CustomResourceDefinition"], ["Widget"]]
        assert all(a.dry_run for a in transport.applied)
        assert not any(call[0] == "query" for call in transport.calls)

    def test_unreachable_cluster(self, runner):
        """Test an unreachable cluster exits 1."""
        transport = FakeClusterTransport(reachable=False)
        with runner.isolated_filesystem():
            write_manifests("dist/app.k8s.yaml", WIDGET)
            with patch("nebula_cli.commands.apply.ToolDetector", FakeDetector), patch(
                "nebula_cli.commands.apply.KubectlTransport", return_value=transport
            ):
                result = runner.invoke(cli, ["apply", "-f", "dist/*.yaml"], obj={})

        assert result.exit_code == 1
        assert "Cannot connect to cluster" in result.output
        assert transport.applied == []

    def test_interrupted(self, runner):
        """Test a rollout stopped by a signal exits 130 like bootstrap."""
        with runner.isolated_filesystem():
            write_manifests("dist/app.k8s.yaml", CRD, WIDGET)
            with patch("nebula_cli.commands.apply.ToolDetector", FakeDetector), patch(
                "nebula_cli.commands.apply.KubectlTransport", return_value=FakeClusterTransport()
            ), patch("nebula_cli.commands.apply.PhasedApplier") as applier_cls:
                applier_cls.return_value.apply.return_value = ApplyReport(cancelled=True)
                result = runner.invoke(cli, ["apply"], obj={})

        assert result.exit_code == 130
        assert "✗ Interrupted" in result.output
        assert "✓ Apply complete" not in result.output


@pytest.mark.integration
class TestSynthCommand:
    """Test nebula synth."""

    def test_missing_app(self, runner):
        """Test a missing app file exits 1."""
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["synth", "--app", "platform.py"], obj={})

        assert result.exit_code == 1
        assert "App file not found" in result.output

    def test_synth(self, runner):
        """Test synthesized files are listed."""
        with runner.isolated_filesystem():
            Path("bootstrap.py").write_text("")

            def mock_run(cmd, **kwargs):
                out = Path(cmd[cmd.index("--output") + 1])
                out.mkdir(parents=True, exist_ok=True)
                (out / "bootstrap.k8s.yaml").write_text("")
                return MagicMock(returncode=0, stdout="", stderr="")

            with patch("subprocess.run", side_effect=mock_run):
                result = runner.invoke(cli, ["synth", "-o", "out"], obj={})

        assert result.exit_code == 0, result.output
        assert "✓ Synthesized 1 file(s) into out" in result.output
        assert "bootstrap.k8s.yaml" in result.output


@pytest.mark.integration
class TestDestroyCommand:
    """Test nebula destroy."""

    def test_nothing_to_do(self, runner):
        """Test a missing cluster is not an error."""
        with patch("nebula_cli.commands.destroy.KindClusterManager") as kind_cls:
            kind_cls.return_value.exists.return_value = False
            result = runner.invoke(cli, ["destroy", "--name", "lab"], obj={})

        assert result.exit_code == 0
        assert "No kind cluster named 'lab'. Nothing to do." in result.output
        kind_cls.return_value.delete.assert_not_called()

    def test_force(self, runner):
        """Test --force deletes without asking."""
        with patch("nebula_cli.commands.destroy.KindClusterManager") as kind_cls:
            kind_cls.return_value.exists.return_value = True
            kind_cls.return_value.delete.return_value = CommandResult(0)
            result = runner.invoke(cli, ["destroy", "--force"], obj={})

        assert result.exit_code == 0
        assert "✓ Cluster 'nebula' deleted." in result.output
        kind_cls.return_value.delete.assert_called_once_with("nebula")

    def test_declined(self, runner):
        """Test answering no leaves the cluster alone."""
        with patch("nebula_cli.commands.destroy.KindClusterManager") as kind_cls:
            kind_cls.return_value.exists.return_value = True
            result = runner.invoke(cli, ["destroy"], obj={}, input="n\n")

        assert result.exit_code == 0
        kind_cls.return_value.delete.assert_not_called()


@pytest.mark.integration
class TestBootstrapCommand:
    """Test nebula bootstrap."""

    def test_project_required(self, runner):
        """Test a run without --project or GCP_PROJECT exits 1."""
        result = runner.invoke(cli, ["bootstrap"], obj={}, env={"GCP_PROJECT": None})

        assert result.exit_code == 1
        assert "--project is required" in result.output

    def test_failure_reports_stage(self, runner):
        """Test a fatal error prints the message and the failed stage."""
        with patch("nebula_cli.commands.bootstrap.BootstrapOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run.side_effect = ClusterNotReadyError(
                "Cluster nebula-gke not ready after 900s", stage="TARGET_CLUSTER_READY"
            )
            result = runner.invoke(cli, ["bootstrap", "--project", "acme-prod"], obj={})

        assert result.exit_code == 1
        assert "✗ Error: Cluster nebula-gke not ready after 900s" in result.output
        assert "Stage: TARGET_CLUSTER_READY" in result.output

    def test_interrupted(self, runner):
        """Test an aborted run exits 130 and names the stage it stopped in."""
        with patch("nebula_cli.commands.bootstrap.BootstrapOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run.side_effect = BootstrapAborted(
                stage="TARGET_CLUSTER_READY"
            )
            result = runner.invoke(cli, ["bootstrap", "--project", "acme-prod"], obj={})

        assert result.exit_code == 130
        assert "Interrupted during TARGET_CLUSTER_READY" in result.output

    def test_options_forwarded(self, runner):
        """Test flags and GCP_PROJECT reach the orchestrator."""
        state = BootstrapState(management=ClusterHandle("lab", kube_context="kind-lab"))
        state.advance(BootstrapStage.DONE)

        with patch("nebula_cli.commands.bootstrap.BootstrapOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.run.return_value = state
            orchestrator_cls.return_value.sync_result = None
            result = runner.invoke(
                cli,
                ["bootstrap", "--name", "lab", "--skip-gke", "--app", "platform.py"],
                obj={},
                env={"GCP_PROJECT": "acme-prod"},
            )

        assert result.exit_code == 0, result.output
        options = orchestrator_cls.call_args[0][0]
        assert options.project == "acme-prod"
        assert options.name == "lab"
        assert options.skip_gke
        assert not options.skip_kind
        assert options.app == "platform.py"
