from pydantic import BaseModel, Field

from .common import SpecModel, WireModel


class ClusterNode(SpecModel):
    node_type: str
    quantity: int


class ClusterConfiguration(SpecModel):
    enable_nginx_ingress: bool = False
    enable_csi_driver: bool = False


class ClusterSpec(SpecModel):
    name: str
    region: str
    kube_version: str = Field(
        default="latest", description='Kubernetes version or "latest"'
    )
    is_highly_available: bool = False
    nodes: list[ClusterNode] = Field(default_factory=list)
    configuration: ClusterConfiguration = Field(default_factory=ClusterConfiguration)


class NodePoolSummary(BaseModel):
    id: str | None = None
    name: str | None = None
    node_type: str
    quantity: int


class ClusterState(BaseModel):
    id: str | None = None
    name: str
    state: str = Field(description="PENDING, ACTIVE, DELETE_IN_PROGRESS or FAILED")
    region: str | None = None
    kube_version: str | None = None
    endpoint: str | None = None
    is_highly_available: bool = False
    node_pools: list[NodePoolSummary] = Field(default_factory=list)
    certificate: str | None = None
    ca_certificate: str | None = None
    private_key: str | None = None
    kubeconfig: str | None = None


# Wire shapes


class ClusterNodeInput(WireModel):
    node_type_name: str
    quantity: int


class ClusterConfigurationInput(WireModel):
    enable_nginx_ingress: bool = False
    enable_csi_driver: bool = False


class ClusterInput(WireModel):
    name: str
    region: str
    kube_version: str | None = None
    is_highly_available: bool = False
    nodes: list[ClusterNodeInput] = Field(default_factory=list)
    configuration: ClusterConfigurationInput = Field(
        default_factory=ClusterConfigurationInput
    )


class ClusterCreated(WireModel):
    id: str | None = None
    name: str


class ClusterRegion(WireModel):
    name: str


class ClusterNodePool(WireModel):
    id: str | None = None
    name: str | None = None
    node_type_name: str
    desired_quantity: int = 0


class Cluster(WireModel):
    id: str | None = None
    name: str
    state: str
    kube_version: str | None = None
    api_server_endpoint: str | None = None
    is_highly_available: bool = False
    region: ClusterRegion | str | None = None
    node_pools: list[ClusterNodePool] | None = None


class ClusterIdentity(WireModel):
    certificate_pem: str | None = None
    cluster_certificate_authority_pem: str | None = None
    private_key_pem: str | None = None
    kube_config: str | None = None
