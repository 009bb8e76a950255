"""Pydantic models for resource descriptors and observed state."""

from enum import Enum
from typing import Any, Dict, FrozenSet, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class ResourceKind(str, Enum):
    """Resource kinds the engine can order and reconcile."""
    VM = "vm"
    FIREWALL_RULE = "firewall-rule"
    HEALTH_CHECK = "health-check"
    BACKEND_SERVICE = "backend-service"
    URL_MAP = "url-map"
    HTTPS_PROXY = "https-proxy"
    SSL_CERTIFICATE = "ssl-certificate"
    STATIC_IP = "static-ip"
    INSTANCE_GROUP = "instance-group"
    FORWARDING_RULE = "forwarding-rule"


class Scope(str, Enum):
    """How the provider addresses a resource."""
    ZONAL = "zonal"
    GLOBAL = "global"


class ResourceDescriptor(BaseModel):
    """Declared desired infrastructure object plus its dependency edges."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique name within a run, stable across runs")
    kind: ResourceKind = Field(..., description="Resource type tag")
    depends_on: FrozenSet[str] = Field(default_factory=frozenset, description="Ids that must exist before this resource")
    spec: Dict[str, Any] = Field(default_factory=dict, description="Kind-specific configuration, compared structurally")
    scope: Scope = Field(default=Scope.GLOBAL, description="Zonal or global addressing")

    @field_validator("id")
    @classmethod
    def _strip_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("id must not be blank")
        return value

    @field_validator("depends_on", mode="before")
    @classmethod
    def _coerce_depends_on(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            return frozenset([value])
        return value

    @field_serializer("depends_on")
    def _serialize_depends_on(self, value: FrozenSet[str]):
        return sorted(value)

    def __hash__(self) -> int:
        return hash((self.kind, self.scope, self.id))

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


class ObservedState(BaseModel):
    """Result of a describe call: absent, or present with the current spec."""
    model_config = ConfigDict(frozen=True)

    present: bool = Field(..., description="Whether the resource exists")
    spec: Optional[Dict[str, Any]] = Field(default=None, description="Current spec when present")

    @classmethod
    def absent(cls) -> "ObservedState":
        return cls(present=False)

    @classmethod
    def present_with(cls, spec: Optional[Dict[str, Any]] = None) -> "ObservedState":
        return cls(present=True, spec=spec)
