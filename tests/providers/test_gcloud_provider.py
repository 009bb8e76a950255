"""Tests for the gcloud provider adapter."""

import json
import subprocess
from unittest.mock import Mock, patch
import pytest
from converge.descriptors.models import ResourceDescriptor, ResourceKind, Scope
from converge.providers.gcloud import DESCRIPTION_MARKER, GcloudProvider, classify_failure, spec_to_flags
from converge.utils.errors import (
    AdapterError,
    AdapterTimeoutError,
    AdapterUnavailableError,
    ConfigError,
    ConflictError,
    PermissionDeniedError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
)


def _completed(returncode=0, stdout="", stderr=""):
    return Mock(returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def provider():
    return GcloudProvider(project_id="demo-project", zone="us-central1-a")


@pytest.fixture
def instance_group():
    return ResourceDescriptor(
        id="ws-ig", kind=ResourceKind.INSTANCE_GROUP, scope=Scope.ZONAL,
        spec={"instances": ["ws"], "named-ports": ["http:8080"]},
    )


class TestSpecToFlags:
    """Test spec translation."""

    def test_flags_sorted_and_typed(self):
        flags = spec_to_flags({
            "rules": ["tcp:22", "tcp:8080"],
            "priority": 1000,
            "labels": {"b": "2", "a": "1"},
            "enable-cdn": True,
            "logging": False,
            "unset": None,
        })

        assert flags == [
            "--enable-cdn",
            "--labels=a=1,b=2",
            "--no-logging",
            "--priority=1000",
            "--rules=tcp:22,tcp:8080",
        ]

    def test_skip_keys(self):
        assert spec_to_flags({"instances": ["a"], "zone": "z"}, skip=("instances",)) == ["--zone=z"]


class TestClassifyFailure:
    """Test stderr classification."""

    @pytest.mark.parametrize("stderr, error", [
        ("ERROR: The resource 'x' already exists", ResourceAlreadyExistsError),
        ("ERROR: Required 'compute.instances.create' permission", PermissionDeniedError),
        ("ERROR: The resource 'x' was not found", ResourceNotFoundError),
        ("ERROR: Unable to connect to server", AdapterUnavailableError),
        ("ERROR: something odd", AdapterError),
    ])
    def test_classification(self, stderr, error):
        assert type(classify_failure(stderr, "failed")) is error


class TestGcloudProvider:
    """Test command construction and result handling."""

    def test_requires_project(self):
        with pytest.raises(ConfigError):
            GcloudProvider(project_id="")

    @patch("converge.providers.gcloud.subprocess.run")
    def test_describe_not_found_is_absent(self, mock_run, provider):
        mock_run.return_value = _completed(1, stderr="ERROR: The resource was not found")

        observed = provider.describe(ResourceKind.STATIC_IP, "ws-ip", Scope.GLOBAL)

        assert not observed.present
        args = mock_run.call_args[0][0]
        assert args[:5] == ["gcloud", "compute", "addresses", "describe", "ws-ip"]
        assert "--global" in args
        assert "--project=demo-project" in args

    @patch("converge.providers.gcloud.subprocess.run")
    def test_describe_reads_marker(self, mock_run, provider):
        description = DESCRIPTION_MARKER + json.dumps({"port": 8080})
        mock_run.return_value = _completed(stdout=json.dumps({"name": "hc", "description": description}))

        observed = provider.describe(ResourceKind.HEALTH_CHECK, "hc", Scope.GLOBAL)

        assert observed.present
        assert observed.spec == {"port": 8080}

    @patch("converge.providers.gcloud.subprocess.run")
    def test_describe_unmanaged_is_conflict(self, mock_run, provider):
        mock_run.return_value = _completed(stdout=json.dumps({"name": "hc", "description": "made by hand"}))

        with pytest.raises(ConflictError):
            provider.describe(ResourceKind.HEALTH_CHECK, "hc", Scope.GLOBAL)

    @patch("converge.providers.gcloud.subprocess.run")
    def test_zonal_describe_uses_zone(self, mock_run, provider):
        mock_run.return_value = _completed(1, stderr="not found")

        provider.describe(ResourceKind.VM, "ws", Scope.ZONAL)

        assert "--zone=us-central1-a" in mock_run.call_args[0][0]

    def test_zonal_without_zone(self):
        provider = GcloudProvider(project_id="demo-project")
        with pytest.raises(ConfigError):
            provider.describe(ResourceKind.VM, "ws", Scope.ZONAL)

    @patch("converge.providers.gcloud.subprocess.run")
    def test_create_writes_marker_and_follow_ups(self, mock_run, provider, instance_group):
        mock_run.return_value = _completed()

        provider.create(instance_group)

        calls = [call[0][0] for call in mock_run.call_args_list]
        assert len(calls) == 3
        create = calls[0]
        assert create[:6] == ["gcloud", "compute", "instance-groups", "unmanaged", "create", "ws-ig"]
        assert not any(arg.startswith("--instances") for arg in create)
        marker = next(arg for arg in create if arg.startswith("--description="))
        assert json.loads(marker[len("--description=") + len(DESCRIPTION_MARKER):]) == instance_group.spec
        assert calls[1][4:6] == ["add-instances", "ws-ig"]
        assert "--instances=ws" in calls[1]
        assert calls[2][4:6] == ["set-named-ports", "ws-ig"]

    @patch("converge.providers.gcloud.subprocess.run")
    def test_failed_follow_up_removes_partial_resource(self, mock_run, provider, instance_group):
        mock_run.side_effect = [
            _completed(),
            _completed(1, stderr="ERROR: permission denied"),
            _completed(),
        ]

        with pytest.raises(PermissionDeniedError):
            provider.create(instance_group)

        cleanup = mock_run.call_args_list[2][0][0]
        assert cleanup[4:6] == ["delete", "ws-ig"]

    @patch("converge.providers.gcloud.subprocess.run")
    def test_create_already_exists(self, mock_run, provider):
        mock_run.return_value = _completed(1, stderr="ERROR: already exists")
        descriptor = ResourceDescriptor(id="ws-ip", kind=ResourceKind.STATIC_IP)

        with pytest.raises(ResourceAlreadyExistsError):
            provider.create(descriptor)

    @patch("converge.providers.gcloud.subprocess.run")
    def test_certificate_create_is_global(self, mock_run, provider):
        mock_run.return_value = _completed()
        descriptor = ResourceDescriptor(
            id="ws-cert", kind=ResourceKind.SSL_CERTIFICATE, spec={"domains": ["code.example.com"]}
        )

        provider.create(descriptor)

        args = mock_run.call_args[0][0]
        assert "--global" in args
        assert "--domains=code.example.com" in args

    @patch("converge.providers.gcloud.subprocess.run")
    def test_delete_is_quiet(self, mock_run, provider):
        mock_run.return_value = _completed()

        provider.delete(ResourceKind.FORWARDING_RULE, "ws-forwarding-rule", Scope.GLOBAL)

        args = mock_run.call_args[0][0]
        assert args[2:5] == ["forwarding-rules", "delete", "ws-forwarding-rule"]
        assert "--quiet" in args

    @patch("converge.providers.gcloud.subprocess.run")
    def test_missing_binary(self, mock_run, provider):
        mock_run.side_effect = FileNotFoundError("gcloud")

        with pytest.raises(AdapterUnavailableError):
            provider.describe(ResourceKind.STATIC_IP, "ws-ip", Scope.GLOBAL)

    @patch("converge.providers.gcloud.subprocess.run")
    def test_command_timeout(self, mock_run, provider):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="gcloud", timeout=600)

        with pytest.raises(AdapterTimeoutError):
            provider.delete(ResourceKind.STATIC_IP, "ws-ip", Scope.GLOBAL)
