from typing import NamedTuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .common import SpecModel, WireModel


class Taint(NamedTuple):
    key: str
    value: str
    # NoSchedule, PreferNoSchedule or NoExecute
    effect: str


class Autoscaling(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool
    min_size: int
    max_size: int


class NodePoolSpec(SpecModel):
    name: str
    cluster: str = Field(description="Name of cluster to create node pool in")
    node_type: str
    quantity: int
    labels: dict[str, str] = Field(default_factory=dict)
    taints: list[Taint] = Field(default_factory=list)
    autoscaling: Autoscaling | None = None


class NodePoolState(BaseModel):
    id: str
    name: str
    cluster: str
    node_type: str
    quantity: int
    labels: dict[str, str] = Field(default_factory=dict)
    taints: list[Taint] = Field(default_factory=list)
    autoscaling: Autoscaling


# Wire shapes


class NodeLabel(WireModel):
    key: str
    value: str


class NodeTaint(WireModel):
    key: str
    value: str
    effect: str


class AutoscalingSettings(WireModel):
    enabled: bool = False
    min_size: int = 0
    max_size: int = 0


class NodePoolInput(WireModel):
    name: str
    cluster_name: str
    node_type_name: str
    quantity: int
    labels: list[NodeLabel] = Field(default_factory=list)
    taints: list[NodeTaint] = Field(default_factory=list)
    autoscaling: AutoscalingSettings = Field(default_factory=AutoscalingSettings)


class NodePoolUpdateInput(WireModel):
    quantity: int | None = None
    autoscaling: AutoscalingSettings | None = None


class NodePoolCreated(WireModel):
    node_pool_id: str = Field(validation_alias=AliasChoices("nodePoolId", "id"))


class NodePool(WireModel):
    id: str
    name: str
    cluster_name: str
    node_type_name: str
    desired_quantity: int
    labels: list[NodeLabel] | None = None
    taints: list[NodeTaint] | None = None
    autoscaling: AutoscalingSettings = Field(default_factory=AutoscalingSettings)
