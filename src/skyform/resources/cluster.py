from typing import Any

from ..clients import ApiClient
from ..core import CLUSTER_ACTIVE
from ..errors import ValidationError
from ..mapper import expand_cluster_nodes, validate_quantity
from ..schemas.cluster import (
    Cluster,
    ClusterConfigurationInput,
    ClusterCreated,
    ClusterIdentity,
    ClusterInput,
    ClusterSpec,
    ClusterState,
    NodePoolSummary,
)
from .base import Lookup, Resource

CLUSTERS_PATH = "rest/v1/cluster"


def cluster_path(name: str) -> str:
    return f"{CLUSTERS_PATH}/{name}"


def _to_state(cluster: Cluster) -> ClusterState:
    # Region is either a bare name or an embedded region object
    region = cluster.region
    if region is not None and not isinstance(region, str):
        region = region.name

    return ClusterState(
        id=cluster.id,
        name=cluster.name,
        state=cluster.state,
        region=region,
        kube_version=cluster.kube_version,
        endpoint=cluster.api_server_endpoint,
        is_highly_available=cluster.is_highly_available,
        node_pools=[
            NodePoolSummary(
                id=np.id,
                name=np.name,
                node_type=np.node_type_name,
                quantity=np.desired_quantity,
            )
            for np in cluster.node_pools or []
        ],
    )


class ClusterResource(Resource[ClusterSpec, str, ClusterState]):
    """
    Kubernetes clusters, keyed by name. Every declared attribute is an
    identity field, so any change forces re-creation.
    """

    entity = "cluster"
    spec_model = ClusterSpec
    create_response_model = ClusterCreated
    converged_state = CLUSTER_ACTIVE

    def validate(self, spec: ClusterSpec) -> None:
        if not spec.name:
            raise ValidationError("cluster: name must not be empty")
        if not spec.region:
            raise ValidationError(f"cluster {spec.name!r}: region must not be empty")
        for node in spec.nodes:
            validate_quantity(node.quantity, f"cluster {spec.name!r}")

    def build_create_request(self, spec: ClusterSpec) -> tuple[str, ClusterInput]:
        return CLUSTERS_PATH, ClusterInput(
            name=spec.name,
            region=spec.region,
            kube_version=spec.kube_version,
            is_highly_available=spec.is_highly_available,
            nodes=expand_cluster_nodes(spec.nodes),
            configuration=ClusterConfigurationInput(
                enable_nginx_ingress=spec.configuration.enable_nginx_ingress,
                enable_csi_driver=spec.configuration.enable_csi_driver,
            ),
        )

    def key_from_response(self, spec: ClusterSpec, response: ClusterCreated) -> str:
        return response.name

    def lookups(self, client: ApiClient, key: str) -> list[Lookup[ClusterState]]:
        def describe_cluster() -> ClusterState | None:
            cluster = client.describe(cluster_path(key), Cluster)
            return _to_state(cluster) if cluster else None

        return [describe_cluster]

    def enrich(self, client: ApiClient, key: str, observed: ClusterState) -> ClusterState:
        # Credentials live behind a separate endpoint and may not exist yet
        identity = client.describe(f"{cluster_path(key)}/identity", ClusterIdentity)
        if identity is None:
            return observed
        return observed.model_copy(
            update={
                "certificate": identity.certificate_pem,
                "ca_certificate": identity.cluster_certificate_authority_pem,
                "private_key": identity.private_key_pem,
                "kubeconfig": identity.kube_config,
            }
        )

    def delete_paths(self, key: str) -> list[str]:
        return [cluster_path(key)]

    def is_converged(self, observed: ClusterState) -> bool:
        return observed.state == CLUSTER_ACTIVE

    def state_of(self, observed: ClusterState) -> str | None:
        return observed.state

    def declared_fields(self, spec: ClusterSpec) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "name": spec.name,
            "region": spec.region,
            "is_highly_available": spec.is_highly_available,
        }
        # "latest" resolves server side, so it never counts as drift
        if spec.kube_version != "latest":
            fields["kube_version"] = spec.kube_version
        return fields

    def observed_fields(self, observed: ClusterState) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "name": observed.name,
            "is_highly_available": observed.is_highly_available,
        }
        if observed.region is not None:
            fields["region"] = observed.region
        if observed.kube_version is not None:
            fields["kube_version"] = observed.kube_version
        return fields
