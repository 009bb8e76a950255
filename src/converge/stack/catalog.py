"""Descriptor catalog for the code-server workstation stack.

Builds the VM behind an identity-aware-proxy tunnel firewall rule and,
optionally, the HTTPS load balancer chain in front of it. Resource names
follow the ``<vm>-<suffix>`` convention so existing deployments are adopted
by id.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field, model_validator
from ..descriptors.models import ResourceDescriptor, ResourceKind, Scope
from ..utils.logging import get_logger

logger = get_logger("stack.catalog")

IAP_SOURCE_RANGE = "35.235.240.0/20"
LB_SOURCE_RANGES = ["130.211.0.0/22", "35.191.0.0/16"]
CODE_SERVER_PORT = 8080


class StackConfig(BaseModel):
    """Deployment settings for the code-server stack."""
    project_id: Optional[str] = Field(default=None, description="Cloud project id")
    region: str = Field(default="us-central1", description="Region")
    zone: str = Field(default="us-central1-a", description="Zone for zonal resources")
    vm_name: str = Field(default="code-server-vm", min_length=1, description="VM instance name and resource prefix")
    machine_type: str = Field(default="e2-medium", description="VM machine type")
    boot_disk_size: int = Field(default=50, gt=0, description="Boot disk size in GB")
    boot_disk_type: str = Field(default="pd-balanced", description="Boot disk type")
    image_family: str = Field(default="ubuntu-2204-lts", description="Boot image family")
    image_project: str = Field(default="ubuntu-os-cloud", description="Boot image project")
    network: str = Field(default="default", description="VPC network for firewall rules")
    network_tags: List[str] = Field(default_factory=lambda: ["iap-tunnel", "code-server"], description="VM network tags")
    labels: Dict[str, str] = Field(
        default_factory=lambda: {"environment": "development", "app": "code-server"},
        description="Resource labels"
    )
    service_account: Optional[str] = Field(default=None, description="VM service account email")
    enable_https: bool = Field(default=False, description="Front the VM with an HTTPS load balancer")
    custom_domain: Optional[str] = Field(default=None, description="Domain for the managed certificate")

    @model_validator(mode="after")
    def _require_domain_for_https(self) -> "StackConfig":
        if self.enable_https and not self.custom_domain:
            raise ValueError("custom_domain is required when enable_https is true")
        return self


def _names(vm_name: str) -> Dict[str, str]:
    return {
        "vm": vm_name,
        "iap_firewall": f"allow-iap-tunnel-{vm_name}",
        "lb_firewall": f"allow-lb-{vm_name}",
        "ip": f"{vm_name}-ip",
        "cert": f"{vm_name}-cert",
        "health_check": f"{vm_name}-health-check",
        "instance_group": f"{vm_name}-ig",
        "backend": f"{vm_name}-backend",
        "url_map": f"{vm_name}-url-map",
        "proxy": f"{vm_name}-https-proxy",
        "forwarding_rule": f"{vm_name}-forwarding-rule",
    }


def _core_descriptors(config: StackConfig) -> List[ResourceDescriptor]:
    names = _names(config.vm_name)

    vm_spec = {
        "machine-type": config.machine_type,
        "boot-disk-size": f"{config.boot_disk_size}GB",
        "boot-disk-type": config.boot_disk_type,
        "image-family": config.image_family,
        "image-project": config.image_project,
        "tags": list(config.network_tags),
        "labels": dict(config.labels),
        "scopes": ["cloud-platform"],
    }
    if config.service_account:
        vm_spec["service-account"] = config.service_account

    return [
        ResourceDescriptor(
            id=names["iap_firewall"],
            kind=ResourceKind.FIREWALL_RULE,
            spec={
                "direction": "INGRESS",
                "priority": 1000,
                "network": config.network,
                "action": "ALLOW",
                "rules": ["tcp:22", f"tcp:{CODE_SERVER_PORT}"],
                "source-ranges": [IAP_SOURCE_RANGE],
                "target-tags": ["iap-tunnel"],
            },
        ),
        ResourceDescriptor(
            id=names["vm"],
            kind=ResourceKind.VM,
            scope=Scope.ZONAL,
            depends_on={names["iap_firewall"]},
            spec=vm_spec,
        ),
    ]


def _https_descriptors(config: StackConfig) -> List[ResourceDescriptor]:
    names = _names(config.vm_name)
    domain = config.custom_domain or ""

    return [
        ResourceDescriptor(
            id=names["ip"],
            kind=ResourceKind.STATIC_IP,
            spec={"ip-version": "IPV4"},
        ),
        ResourceDescriptor(
            id=names["cert"],
            kind=ResourceKind.SSL_CERTIFICATE,
            spec={"domains": [domain]},
        ),
        ResourceDescriptor(
            id=names["health_check"],
            kind=ResourceKind.HEALTH_CHECK,
            spec={"port": CODE_SERVER_PORT, "request-path": "/"},
        ),
        ResourceDescriptor(
            id=names["instance_group"],
            kind=ResourceKind.INSTANCE_GROUP,
            scope=Scope.ZONAL,
            depends_on={names["vm"]},
            spec={"instances": [names["vm"]], "named-ports": [f"http:{CODE_SERVER_PORT}"]},
        ),
        ResourceDescriptor(
            id=names["backend"],
            kind=ResourceKind.BACKEND_SERVICE,
            depends_on={names["health_check"], names["instance_group"]},
            spec={
                "protocol": "HTTP",
                "port-name": "http",
                "health-checks": names["health_check"],
                "iap": "enabled",
                "backends": [
                    {"instance-group": names["instance_group"], "instance-group-zone": config.zone}
                ],
            },
        ),
        ResourceDescriptor(
            id=names["url_map"],
            kind=ResourceKind.URL_MAP,
            depends_on={names["backend"]},
            spec={"default-service": names["backend"]},
        ),
        ResourceDescriptor(
            id=names["proxy"],
            kind=ResourceKind.HTTPS_PROXY,
            depends_on={names["url_map"], names["cert"]},
            spec={"ssl-certificates": names["cert"], "url-map": names["url_map"]},
        ),
        ResourceDescriptor(
            id=names["forwarding_rule"],
            kind=ResourceKind.FORWARDING_RULE,
            depends_on={names["proxy"], names["ip"]},
            spec={"address": names["ip"], "target-https-proxy": names["proxy"], "ports": 443},
        ),
        ResourceDescriptor(
            id=names["lb_firewall"],
            kind=ResourceKind.FIREWALL_RULE,
            depends_on={names["vm"]},
            spec={
                "direction": "INGRESS",
                "priority": 1000,
                "network": config.network,
                "action": "ALLOW",
                "rules": [f"tcp:{CODE_SERVER_PORT}"],
                "source-ranges": list(LB_SOURCE_RANGES),
                "target-tags": ["code-server"],
            },
        ),
    ]


def build_stack(config: StackConfig) -> List[ResourceDescriptor]:
    """Return the desired descriptors for a stack configuration."""
    descriptors = _core_descriptors(config)
    if config.enable_https:
        descriptors += _https_descriptors(config)
    logger.debug(f"Built stack for {config.vm_name}: {len(descriptors)} descriptors")
    return descriptors


def managed_stack(config: StackConfig) -> List[ResourceDescriptor]:
    """
    Return every descriptor the stack can own, HTTPS chain included.

    Passing this as ``managed`` makes a run with HTTPS disabled tear the load
    balancer down, and lets destroy remove a stack whichever way it was
    deployed.
    """
    return _core_descriptors(config) + _https_descriptors(config)
