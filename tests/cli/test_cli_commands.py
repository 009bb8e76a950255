"""Tests for plan/apply/destroy/validate CLI commands."""

import json
import pytest
import yaml
from click.testing import CliRunner
from converge.cli.main import cli
from converge import __version__
from converge.contracts.run_report import REPORT_VERSION


@pytest.fixture
def descriptor_file(tmp_path):
    """Descriptor file with the static IP, certificate, proxy and rule chain."""
    document = {
        "resources": [
            {"id": "ip", "kind": "static-ip"},
            {"id": "cert", "kind": "ssl-certificate", "depends_on": ["ip"],
             "spec": {"domains": ["code.example.com"]}},
            {"id": "proxy", "kind": "https-proxy", "depends_on": ["cert"],
             "spec": {"ssl-certificates": "cert"}},
            {"id": "rule", "kind": "forwarding-rule", "depends_on": ["proxy"],
             "spec": {"target-https-proxy": "proxy"}},
        ]
    }
    path = tmp_path / "stack.yaml"
    path.write_text(yaml.safe_dump(document))
    return path


@pytest.fixture
def cyclic_file(tmp_path):
    document = {
        "resources": [
            {"id": "a", "kind": "vm", "depends_on": ["b"]},
            {"id": "b", "kind": "vm", "depends_on": ["a"]},
        ]
    }
    path = tmp_path / "cyclic.yaml"
    path.write_text(yaml.safe_dump(document))
    return path


@pytest.fixture
def state_file(tmp_path):
    return str(tmp_path / "state.json")


def _report(path):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


class TestPlanCommand:
    """Test plan command."""

    def test_plan_json_output(self, descriptor_file, state_file, tmp_path):
        """Plan writes a JSON run report listing creates in order."""
        out = tmp_path / "plan.json"
        runner = CliRunner()
        result = runner.invoke(cli, [
            'plan', str(descriptor_file), '--state', state_file, '--json', '-o', str(out), '--quiet'
        ])

        assert result.exit_code == 0
        report = _report(out)
        assert report["mode"] == "plan"
        assert [(e["action"], e["id"]) for e in report["entries"]] == [
            ("CREATE", "ip"), ("CREATE", "cert"), ("CREATE", "proxy"), ("CREATE", "rule"),
        ]

    def test_plan_human_output(self, descriptor_file, state_file):
        runner = CliRunner()
        result = runner.invoke(cli, ['plan', str(descriptor_file), '--state', state_file])

        assert result.exit_code == 0
        assert "Converge Plan" in result.output
        assert "4 to create" in result.output

    def test_plan_cycle_exits_invalid(self, cyclic_file, state_file):
        runner = CliRunner()
        result = runner.invoke(cli, ['plan', str(cyclic_file), '--state', state_file])

        assert result.exit_code == 2
        assert "cycle" in result.output.lower()

    @pytest.mark.parametrize("timeout", ["0", "-5"])
    def test_plan_rejects_non_positive_timeout(self, descriptor_file, state_file, timeout):
        runner = CliRunner()
        result = runner.invoke(cli, [
            'plan', str(descriptor_file), '--state', state_file, '--timeout', timeout
        ])

        assert result.exit_code == 2
        assert "--timeout" in result.output

    def test_plan_accepts_positive_timeout(self, descriptor_file, state_file):
        runner = CliRunner()
        result = runner.invoke(cli, ['plan', str(descriptor_file), '--state', state_file, '--timeout', '2.5'])

        assert result.exit_code == 0

    def test_plan_missing_file(self, state_file):
        runner = CliRunner()
        result = runner.invoke(cli, ['plan', 'does-not-exist.yaml', '--state', state_file])

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestApplyCommand:
    """Test apply command."""

    def test_apply_then_plan_is_noop(self, descriptor_file, state_file, tmp_path):
        """State persists between invocations through the state file."""
        runner = CliRunner()
        result = runner.invoke(cli, ['apply', str(descriptor_file), '--state', state_file, '--yes'])
        assert result.exit_code == 0
        assert "4 created" in result.output

        out = tmp_path / "second.json"
        result = runner.invoke(cli, [
            'plan', str(descriptor_file), '--state', state_file, '--json', '-o', str(out)
        ])

        assert result.exit_code == 0
        assert all(e["action"] == "NO_OP" for e in _report(out)["entries"])

    def test_apply_prompt_declined(self, descriptor_file, state_file):
        runner = CliRunner()
        result = runner.invoke(cli, ['apply', str(descriptor_file), '--state', state_file], input="n\n")

        assert result.exit_code != 0
        assert "Apply these changes?" in result.output

    def test_apply_prompt_accepted(self, descriptor_file, state_file):
        runner = CliRunner()
        result = runner.invoke(cli, ['apply', str(descriptor_file), '--state', state_file], input="y\n")

        assert result.exit_code == 0
        assert "Converge Apply" in result.output

    def test_apply_up_to_date_skips_prompt(self, descriptor_file, state_file):
        runner = CliRunner()
        runner.invoke(cli, ['apply', str(descriptor_file), '--state', state_file, '--yes'])

        result = runner.invoke(cli, ['apply', str(descriptor_file), '--state', state_file])

        assert result.exit_code == 0
        assert "up to date" in result.output

    def test_apply_writes_markdown_and_artifacts(self, descriptor_file, state_file, tmp_path):
        markdown = tmp_path / "report.md"
        artifacts = tmp_path / "artifacts"
        runner = CliRunner()
        result = runner.invoke(cli, [
            'apply', str(descriptor_file), '--state', state_file, '--yes',
            '--markdown', str(markdown), '--artifacts', str(artifacts),
        ])

        assert result.exit_code == 0
        assert "# Converge Apply Report" in markdown.read_text()
        assert (artifacts / "run_report.json").exists()
        assert (artifacts / "summary.json").exists()


class TestDestroyCommand:
    """Test destroy command."""

    def test_destroy_dry_run_then_destroy(self, descriptor_file, state_file, tmp_path):
        runner = CliRunner()
        runner.invoke(cli, ['apply', str(descriptor_file), '--state', state_file, '--yes'])

        out = tmp_path / "dry.json"
        result = runner.invoke(cli, [
            'destroy', str(descriptor_file), '--state', state_file, '--dry-run', '--json', '-o', str(out)
        ])
        assert result.exit_code == 0
        assert [e["id"] for e in _report(out)["entries"]] == ["rule", "proxy", "cert", "ip"]

        result = runner.invoke(cli, ['destroy', str(descriptor_file), '--state', state_file, '--yes'])
        assert result.exit_code == 0

        with open(state_file, 'r', encoding='utf-8') as f:
            assert json.load(f)["resources"] == []


class TestValidateCommand:
    """Test validate command."""

    def test_validate_prints_order(self, descriptor_file):
        runner = CliRunner()
        result = runner.invoke(cli, ['validate', str(descriptor_file), '--json'])

        assert result.exit_code == 0
        assert json.loads(result.output) == ["ip", "cert", "proxy", "rule"]

    def test_validate_destroy_order(self, descriptor_file):
        runner = CliRunner()
        result = runner.invoke(cli, ['validate', str(descriptor_file), '--destroy', '--json'])

        assert json.loads(result.output) == ["rule", "proxy", "cert", "ip"]

    def test_validate_cycle(self, cyclic_file):
        runner = CliRunner()
        result = runner.invoke(cli, ['validate', str(cyclic_file)])

        assert result.exit_code == 2


class TestStackAndVersion:
    """Test stack render and version commands."""

    def test_stack_render_from_env(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("GCP_PROJECT_ID=demo-project\nVM_NAME=ws\nENABLE_HTTPS_LB=false\n")
        out = tmp_path / "stack.yaml"

        runner = CliRunner()
        result = runner.invoke(cli, ['stack', 'render', '--env', str(env_file), '-o', str(out)])

        assert result.exit_code == 0
        document = yaml.safe_load(out.read_text())
        assert [r["id"] for r in document["resources"]] == ["allow-iap-tunnel-ws", "ws"]
        assert "ws-forwarding-rule" in [r["id"] for r in document["managed"]]

    def test_stack_render_requires_input(self):
        runner = CliRunner()
        result = runner.invoke(cli, ['stack', 'render'])

        assert result.exit_code != 0

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(cli, ['version'])

        assert result.exit_code == 0
        assert f"converge version {__version__}" in result.output
        assert REPORT_VERSION in result.output

    def test_version_json(self):
        runner = CliRunner()
        result = runner.invoke(cli, ['version', '--json'])

        details = json.loads(result.output)
        assert details["converge"] == __version__
        assert details["report_format"] == REPORT_VERSION
        assert details["providers"] == ["gcloud", "memory"]
