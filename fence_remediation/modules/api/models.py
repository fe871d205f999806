"""
Fence agents remediation data models.

These models define the structure of the FenceAgentsRemediation custom
resource as read from and written back to the Kubernetes API.
"""

import copy
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PrivateAttr

# Enums


class TaintEffect(str, Enum):
    """Node taint effects."""

    NO_SCHEDULE = "NoSchedule"
    PREFER_NO_SCHEDULE = "PreferNoSchedule"
    NO_EXECUTE = "NoExecute"


# Node Models


class Taint(BaseModel):
    """A node taint. Matching ignores the value."""

    key: str = Field(..., min_length=1)
    value: Optional[str] = None
    effect: TaintEffect = TaintEffect.NO_EXECUTE

    def matches(self, other: Any) -> bool:
        """Check whether another taint (model or kubernetes V1Taint) has the same key and effect."""
        effect = getattr(other.effect, "value", other.effect)
        return other.key == self.key and effect == self.effect.value


# Resource Models


class ObjectMeta(BaseModel):
    """Subset of Kubernetes object metadata used by the controller."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    namespace: Optional[str] = None
    uid: Optional[str] = None
    resource_version: Optional[str] = Field(None, alias="resourceVersion")
    finalizers: List[str] = Field(default_factory=list)
    deletion_timestamp: Optional[datetime] = Field(None, alias="deletionTimestamp")


class RemediationSpec(BaseModel):
    """
    Desired fencing action.

    ``None`` and ``{}`` are different for both parameter maps: a missing
    map is a validation failure, an empty one is not.
    """

    model_config = ConfigDict(populate_by_name=True)

    agent: str = Field(..., description="Fence agent executable, e.g. fence_ipmilan")
    shared_parameters: Optional[Dict[str, str]] = Field(
        None,
        validation_alias=AliasChoices("sharedparameters", "sharedParameters", "shared_parameters"),
        serialization_alias="sharedparameters",
        description="Parameters passed to the agent regardless of the node",
    )
    node_parameters: Optional[Dict[str, Dict[str, str]]] = Field(
        None,
        validation_alias=AliasChoices("nodeparameters", "nodeParameters", "node_parameters"),
        serialization_alias="nodeparameters",
        description="Per node parameter values, keyed by parameter then node name",
    )


class FenceAgentsRemediation(BaseModel):
    """A FenceAgentsRemediation custom resource. Its name is the target node name."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(
        "fence-agents-remediation.medik8s.io/v1alpha1", alias="apiVersion"
    )
    kind: str = "FenceAgentsRemediation"
    metadata: ObjectMeta
    spec: RemediationSpec

    _raw: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_k8s(cls, obj: Dict[str, Any]) -> "FenceAgentsRemediation":
        """Build the model from the dictionary returned by CustomObjectsApi."""
        far = cls.model_validate(obj)
        far._raw = copy.deepcopy(obj)
        return far

    def to_k8s(self) -> Dict[str, Any]:
        """
        Render the object for an update call.

        Unknown fields of the original object (status, labels, ...) are kept;
        finalizers and resourceVersion come from the model, so the write is
        conditional on the version last read.
        """
        body = copy.deepcopy(self._raw) if self._raw else {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": {"name": self.metadata.name},
            "spec": self.spec.model_dump(by_alias=True, exclude_none=True),
        }
        metadata = body.setdefault("metadata", {})
        metadata["name"] = self.metadata.name
        if self.metadata.namespace:
            metadata["namespace"] = self.metadata.namespace
        if self.metadata.resource_version:
            metadata["resourceVersion"] = self.metadata.resource_version
        metadata["finalizers"] = list(self.metadata.finalizers)
        return body

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def is_being_deleted(self) -> bool:
        """True once the API server has set a deletion timestamp."""
        return self.metadata.deletion_timestamp is not None

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.metadata.finalizers

    def add_finalizer(self, finalizer: str) -> bool:
        """Add the finalizer; returns False if it was already present."""
        if self.has_finalizer(finalizer):
            return False
        self.metadata.finalizers.append(finalizer)
        return True

    def remove_finalizer(self, finalizer: str) -> bool:
        """Remove the finalizer; returns False if it was not present."""
        if not self.has_finalizer(finalizer):
            return False
        self.metadata.finalizers = [f for f in self.metadata.finalizers if f != finalizer]
        return True
