"""gcloud CLI provider adapter (Compute Engine resources via subprocess)."""

import json
import subprocess
from typing import Any, Dict, List, Optional
from ..descriptors.models import ObservedState, ResourceDescriptor, ResourceKind, Scope
from ..utils.errors import (
    AdapterError,
    AdapterTimeoutError,
    AdapterUnavailableError,
    ConfigError,
    ConflictError,
    PermissionDeniedError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
)
from ..utils.logging import get_logger
from .base import ProviderAdapter

logger = get_logger("providers.gcloud")

# Description prefix marking resources created by converge; the applied spec follows as JSON.
DESCRIPTION_MARKER = "converge:"

# Per-kind command table: gcloud command group, extra create verb words, and
# whether the global scope needs an explicit --global flag.
COMMANDS: Dict[ResourceKind, Dict[str, Any]] = {
    ResourceKind.VM: {"group": ["instances"], "create": [], "global_flag": False},
    ResourceKind.FIREWALL_RULE: {"group": ["firewall-rules"], "create": [], "global_flag": False},
    ResourceKind.HEALTH_CHECK: {"group": ["health-checks"], "create": ["http"], "global_flag": False},
    ResourceKind.BACKEND_SERVICE: {"group": ["backend-services"], "create": [], "global_flag": True},
    ResourceKind.URL_MAP: {"group": ["url-maps"], "create": [], "global_flag": False},
    ResourceKind.HTTPS_PROXY: {"group": ["target-https-proxies"], "create": [], "global_flag": False},
    ResourceKind.SSL_CERTIFICATE: {"group": ["ssl-certificates"], "create": [], "global_flag": False},
    ResourceKind.STATIC_IP: {"group": ["addresses"], "create": [], "global_flag": True},
    ResourceKind.INSTANCE_GROUP: {"group": ["instance-groups", "unmanaged"], "create": [], "global_flag": False},
    ResourceKind.FORWARDING_RULE: {"group": ["forwarding-rules"], "create": [], "global_flag": True},
}

# Spec keys applied by follow-up commands instead of create flags.
FOLLOW_UP_KEYS = {
    ResourceKind.INSTANCE_GROUP: ("instances", "named-ports"),
    ResourceKind.BACKEND_SERVICE: ("backends",),
}

NOT_FOUND_MARKERS = ("was not found", "not found", "does not exist")
ALREADY_EXISTS_MARKERS = ("already exists",)
PERMISSION_MARKERS = ("permission", "forbidden", "403", "not authorized", "unauthenticated")
UNAVAILABLE_MARKERS = ("unable to connect", "could not resolve", "connection", "503", "unavailable")


def spec_to_flags(spec: Dict[str, Any], skip: tuple = ()) -> List[str]:
    """Translate a spec mapping into ``--key=value`` gcloud flags (sorted by key)."""
    flags = []
    for key in sorted(spec):
        if key in skip or key == "description":
            continue
        value = spec[key]
        if value is None:
            continue
        if value is True:
            flags.append(f"--{key}")
        elif value is False:
            flags.append(f"--no-{key}")
        elif isinstance(value, (list, tuple)):
            flags.append(f"--{key}={','.join(str(v) for v in value)}")
        elif isinstance(value, dict):
            flags.append(f"--{key}={','.join(f'{k}={v}' for k, v in sorted(value.items()))}")
        else:
            flags.append(f"--{key}={value}")
    return flags


def classify_failure(stderr: str, message: str) -> AdapterError:
    """Map gcloud stderr text to the matching AdapterError."""
    text = (stderr or "").lower()
    if any(marker in text for marker in ALREADY_EXISTS_MARKERS):
        return ResourceAlreadyExistsError(message)
    if any(marker in text for marker in PERMISSION_MARKERS):
        return PermissionDeniedError(message)
    if any(marker in text for marker in NOT_FOUND_MARKERS):
        return ResourceNotFoundError(message)
    if any(marker in text for marker in UNAVAILABLE_MARKERS):
        return AdapterUnavailableError(message)
    return AdapterError(message)


class GcloudProvider(ProviderAdapter):
    """
    Provider backed by the gcloud CLI.

    Every resource is addressed in one project. The applied spec is stored in
    the resource description so describe can report it back for diffing; a
    resource that exists without that marker was not created by converge and
    is reported as a conflict rather than recreated.
    """

    name = "gcloud"

    def __init__(
        self,
        project_id: str,
        zone: Optional[str] = None,
        binary: str = "gcloud",
        command_timeout: Optional[float] = 600
    ):
        if not project_id:
            raise ConfigError("project_id is required for the gcloud provider")
        self.project_id = project_id
        self.zone = zone
        self.binary = binary
        self.command_timeout = command_timeout

    def describe(self, kind: ResourceKind, resource_id: str, scope: Scope) -> ObservedState:
        args = self._base_args(kind, "describe", resource_id, scope) + ["--format=json"]
        try:
            output = self._run(args)
        except ResourceNotFoundError:
            return ObservedState.absent()

        try:
            data = json.loads(output or "{}")
        except json.JSONDecodeError as e:
            raise AdapterError(f"Unparseable describe output for {resource_id}: {e}")

        description = data.get("description") or ""
        if not description.startswith(DESCRIPTION_MARKER):
            raise ConflictError(
                f"{ResourceKind(kind).value}:{resource_id} exists but is not managed by converge"
            )
        try:
            spec = json.loads(description[len(DESCRIPTION_MARKER):])
        except json.JSONDecodeError as e:
            raise ConflictError(f"Corrupt converge marker on {resource_id}: {e}")
        return ObservedState.present_with(spec)

    def create(self, descriptor: ResourceDescriptor) -> None:
        command = COMMANDS[descriptor.kind]
        args = [self.binary, "compute"] + command["group"] + ["create"] + command["create"] + [descriptor.id]
        args += self._scope_flags(descriptor.kind, descriptor.scope, creating=True)
        args += spec_to_flags(descriptor.spec, skip=FOLLOW_UP_KEYS.get(descriptor.kind, ()))
        args += [f"--project={self.project_id}", f"--description={self._marker(descriptor)}", "--quiet"]

        logger.info(f"Creating {descriptor}")
        self._run(args)

        try:
            for follow_up in self._follow_ups(descriptor):
                self._run(follow_up)
        except AdapterError:
            logger.warning(f"Follow-up configuration failed for {descriptor}, removing partial resource")
            try:
                self.delete(descriptor.kind, descriptor.id, descriptor.scope)
            except AdapterError as cleanup_error:
                logger.error(f"Could not remove partial resource {descriptor}: {cleanup_error}")
            raise

    def delete(self, kind: ResourceKind, resource_id: str, scope: Scope) -> None:
        args = self._base_args(kind, "delete", resource_id, scope) + ["--quiet"]
        logger.info(f"Deleting {ResourceKind(kind).value}:{resource_id}")
        self._run(args)

    def _base_args(self, kind: ResourceKind, verb: str, resource_id: str, scope: Scope) -> List[str]:
        command = COMMANDS[ResourceKind(kind)]
        return (
            [self.binary, "compute"] + command["group"] + [verb, resource_id]
            + self._scope_flags(kind, scope)
            + [f"--project={self.project_id}"]
        )

    def _scope_flags(self, kind: ResourceKind, scope: Scope, creating: bool = False) -> List[str]:
        if Scope(scope) == Scope.ZONAL:
            if not self.zone:
                raise ConfigError(f"A zone is required for zonal resource kind {ResourceKind(kind).value}")
            return [f"--zone={self.zone}"]
        if COMMANDS[ResourceKind(kind)]["global_flag"]:
            return ["--global"]
        if creating and ResourceKind(kind) == ResourceKind.SSL_CERTIFICATE:
            return ["--global"]
        return []

    def _marker(self, descriptor: ResourceDescriptor) -> str:
        return DESCRIPTION_MARKER + json.dumps(descriptor.spec, sort_keys=True, separators=(",", ":"))

    def _follow_ups(self, descriptor: ResourceDescriptor) -> List[List[str]]:
        spec = descriptor.spec
        group = [self.binary, "compute"] + COMMANDS[descriptor.kind]["group"]
        suffix = self._scope_flags(descriptor.kind, descriptor.scope) + [f"--project={self.project_id}"]
        commands = []

        if descriptor.kind == ResourceKind.INSTANCE_GROUP:
            if spec.get("instances"):
                commands.append(group + ["add-instances", descriptor.id] + spec_to_flags({"instances": spec["instances"]}) + suffix)
            if spec.get("named-ports"):
                commands.append(group + ["set-named-ports", descriptor.id] + spec_to_flags({"named-ports": spec["named-ports"]}) + suffix)

        elif descriptor.kind == ResourceKind.BACKEND_SERVICE:
            for backend in spec.get("backends") or []:
                commands.append(group + ["add-backend", descriptor.id] + spec_to_flags(backend) + suffix)

        return commands

    def _run(self, args: List[str]) -> str:
        logger.debug(f"Running: {' '.join(args)}")
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.command_timeout
            )
        except FileNotFoundError as e:
            raise AdapterUnavailableError(f"{self.binary} CLI not found. Please install Google Cloud SDK: {e}")
        except subprocess.TimeoutExpired:
            raise AdapterTimeoutError(f"Timeout running {' '.join(args[:4])}")

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise classify_failure(stderr, f"{' '.join(args[:5])} failed: {stderr}")
        return result.stdout
