"""
Data models for the Traffical SDK

Two families live here:

- Config-file and bundle shapes, declared as pydantic models so that YAML
  from disk and JSON from the platform are validated the same way before
  anything downstream touches them.
- Runtime results handed back to application code (Decision), kept as
  plain dataclasses.

Wire and file formats use camelCase keys (orgId, valueType, bucketRange...);
the Python attributes are snake_case with pydantic aliases.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ParameterType = Literal["string", "number", "boolean", "json"]
EventValueType = Literal["currency", "count", "rate", "boolean"]

# checkout.button.color, pricing.discountPct, ...
PARAMETER_KEY_PATTERN = re.compile(r"^[a-z][a-zA-Z0-9_]*(\.[a-zA-Z0-9_]+)*$")


def value_matches_type(value: Any, param_type: str) -> bool:
    """Check a concrete value against a declared parameter type"""
    if param_type == "string":
        return isinstance(value, str)
    if param_type == "number":
        # bool is an int subclass, and never a number here
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if param_type == "boolean":
        return isinstance(value, bool)
    if param_type == "json":
        return isinstance(value, (dict, list))
    return False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_payload(self) -> Dict[str, Any]:
        """Serialize with wire (camelCase) keys, dropping top-level None values

        Values pydantic cannot serialize (application objects passed in a
        context, for instance) are sent as their str().
        """
        data = self.model_dump(by_alias=True, mode="json", fallback=str)
        return {key: value for key, value in data.items() if value is not None}


class _FrozenModel(_Model):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


# ---------------------------------------------------------------------------
# config.yaml
# ---------------------------------------------------------------------------


class ParameterDefinition(_Model):
    """One entry of the `parameters` mapping in config.yaml"""

    type: ParameterType
    default: Any
    description: Optional[str] = None
    namespace: Optional[str] = None

    @model_validator(mode="after")
    def _default_matches_type(self) -> "ParameterDefinition":
        if not value_matches_type(self.default, self.type):
            raise ValueError(
                f"default {self.default!r} does not match declared type '{self.type}'"
            )
        return self


class EventDefinition(_Model):
    """One entry of the `events` mapping in config.yaml"""

    value_type: EventValueType = Field(alias="valueType")
    unit: Optional[str] = None
    description: Optional[str] = None


class ProjectInfo(_Model):
    id: str
    org_id: str = Field(alias="orgId")


class ConfigFile(_Model):
    """
    The local config.yaml, authored by developers and pushed to the platform

    Example:
        version: "1.0"
        project:
          id: proj_123
          orgId: org_456
        parameters:
          checkout.button.color:
            type: string
            default: "#1a73e8"
        events:
          purchase:
            valueType: currency
            unit: USD
    """

    version: str = "1.0"
    project: ProjectInfo
    parameters: Dict[str, ParameterDefinition] = Field(default_factory=dict)
    events: Dict[str, EventDefinition] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_string(cls, value: Any) -> Any:
        # `version: 1.0` in YAML parses as a float
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("parameters", "events", mode="before")
    @classmethod
    def _empty_mapping(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("parameters")
    @classmethod
    def _dot_notation_keys(
        cls, value: Dict[str, ParameterDefinition]
    ) -> Dict[str, ParameterDefinition]:
        bad_keys = [key for key in value if not PARAMETER_KEY_PATTERN.match(key)]
        if bad_keys:
            raise ValueError(f"parameter keys must use dot notation: {bad_keys}")
        return value

    def to_payload(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "project": self.project.to_payload(),
            "parameters": {key: p.to_payload() for key, p in self.parameters.items()},
            "events": {name: e.to_payload() for name, e in self.events.items()},
        }


# ---------------------------------------------------------------------------
# Configuration bundle
# ---------------------------------------------------------------------------


class HashingConfig(_FrozenModel):
    unit_key: str = Field(default="userId", alias="unitKey")
    bucket_count: int = Field(default=1000, alias="bucketCount", gt=0)


class Condition(_FrozenModel):
    field: str
    op: str
    value: Any = None


class Allocation(_FrozenModel):
    name: str
    bucket_range: Tuple[int, int] = Field(alias="bucketRange")
    overrides: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("bucket_range")
    @classmethod
    def _ordered_range(cls, value: Tuple[int, int]) -> Tuple[int, int]:
        start, end = value
        if start < 0 or end < start:
            raise ValueError(f"invalid bucket range {list(value)}")
        return value


class Policy(_FrozenModel):
    id: str
    state: Literal["running", "paused"] = "running"
    conditions: Tuple[Condition, ...] = ()
    allocations: Tuple[Allocation, ...] = ()


class Layer(_FrozenModel):
    id: str
    policies: Tuple[Policy, ...] = ()


class BundleParameter(_FrozenModel):
    key: str
    type: ParameterType
    default: Any
    layer_id: Optional[str] = Field(default=None, alias="layerId")
    namespace: Optional[str] = None


class ConfigBundle(_FrozenModel):
    """
    Immutable snapshot of everything a client resolves against

    A bundle is fetched as a whole and replaced as a whole; nothing in the
    SDK edits one in place.
    """

    version: str = "0"
    org_id: Optional[str] = Field(default=None, alias="orgId")
    project_id: Optional[str] = Field(default=None, alias="projectId")
    env: str = "production"
    hashing: HashingConfig = Field(default_factory=HashingConfig)
    parameters: Tuple[BundleParameter, ...] = ()
    layers: Tuple[Layer, ...] = ()
    events: Dict[str, EventDefinition] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_string(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def parameter_index(self) -> Dict[str, BundleParameter]:
        return {param.key: param for param in self.parameters}


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class DecisionEvent(_Model):
    """Emitted automatically when parameters are resolved with tracking on"""

    type: Literal["decision"] = "decision"
    decision_id: str = Field(alias="decisionId")
    unit_key: Optional[str] = Field(default=None, alias="unitKey")
    assignments: Dict[str, Any] = Field(default_factory=dict)
    layers: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)


class TrackEvent(_Model):
    """Application-triggered conversion event"""

    type: Literal["track"] = "track"
    event: str = Field(min_length=1)
    properties: Dict[str, Any] = Field(default_factory=dict)
    value: Optional[float] = None
    unit_key: Optional[str] = Field(default=None, alias="unitKey")
    decision_id: Optional[str] = Field(default=None, alias="decisionId")
    timestamp: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Runtime results
# ---------------------------------------------------------------------------


@dataclass
class LayerAssignment:
    """Where a unit landed inside one layer"""

    layer_id: str
    bucket: int
    policy_id: Optional[str] = None
    allocation: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "bucket": self.bucket,
            "policyId": self.policy_id,
            "allocation": self.allocation,
        }


@dataclass
class Decision:
    """
    Result of TrafficalClient.decide()

    `assignments` always holds every key the caller asked for; values the
    bundle could not supply are the caller's defaults.
    """

    decision_id: str
    assignments: Dict[str, Any]
    unit_key: Optional[str] = None
    layers: List[LayerAssignment] = field(default_factory=list)
    from_bundle: bool = False

    @property
    def metadata(self) -> Dict[str, Any]:
        return {
            "unitKey": self.unit_key,
            "layers": {layer.layer_id: layer.as_dict() for layer in self.layers},
            "fromBundle": self.from_bundle,
        }
