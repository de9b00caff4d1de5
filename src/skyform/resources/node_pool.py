from typing import Any

from ..clients import ApiClient
from ..errors import ValidationError
from ..mapper import (
    expand_autoscaling,
    expand_labels,
    expand_taints,
    flatten_autoscaling,
    flatten_labels,
    flatten_taints,
    validate_autoscaling,
    validate_quantity,
    validate_taint,
)
from ..schemas.node_pool import (
    NodePool,
    NodePoolCreated,
    NodePoolInput,
    NodePoolSpec,
    NodePoolState,
    NodePoolUpdateInput,
)
from .base import Lookup, Resource

NODE_POOLS_PATH = "rest/v1/node-pool"


def node_pool_path(node_pool_id: str) -> str:
    return f"{NODE_POOLS_PATH}/{node_pool_id}"


class NodePoolResource(Resource[NodePoolSpec, str, NodePoolState]):
    """
    Node pools, keyed by the id the API assigns on creation.
    Quantity and autoscaling are patched together; labels and taints
    are applied at boot and force re-creation.
    """

    entity = "node pool"
    spec_model = NodePoolSpec
    mutable_groups = {"scaling": ("quantity", "autoscaling")}
    create_response_model = NodePoolCreated

    def validate(self, spec: NodePoolSpec) -> None:
        label = f"node pool {spec.name!r}"
        if not spec.cluster:
            raise ValidationError(f"{label}: cluster must not be empty")
        validate_quantity(spec.quantity, label)
        for taint in spec.taints:
            validate_taint(taint, label)
        validate_autoscaling(spec.autoscaling, label)

    def build_create_request(self, spec: NodePoolSpec) -> tuple[str, NodePoolInput]:
        return NODE_POOLS_PATH, NodePoolInput(
            name=spec.name,
            cluster_name=spec.cluster,
            node_type_name=spec.node_type,
            quantity=spec.quantity,
            labels=expand_labels(spec.labels),
            taints=expand_taints(spec.taints),
            autoscaling=expand_autoscaling(spec.autoscaling),
        )

    def key_from_response(self, spec: NodePoolSpec, response: NodePoolCreated) -> str:
        return response.node_pool_id

    def lookups(self, client: ApiClient, key: str) -> list[Lookup[NodePoolState]]:
        def describe_node_pool() -> NodePoolState | None:
            pool = client.describe(node_pool_path(key), NodePool)
            if pool is None:
                return None
            return NodePoolState(
                id=pool.id,
                name=pool.name,
                cluster=pool.cluster_name,
                node_type=pool.node_type_name,
                quantity=pool.desired_quantity,
                labels=flatten_labels(pool.labels),
                taints=flatten_taints(pool.taints),
                autoscaling=flatten_autoscaling(pool.autoscaling),
            )

        return [describe_node_pool]

    def build_update_request(
        self, key: str, spec: NodePoolSpec, fields: list[str]
    ) -> tuple[str, NodePoolUpdateInput]:
        # Only the changed fields are sent; unset ones are dropped from the body
        changes: dict[str, Any] = {}
        if "quantity" in fields:
            changes["quantity"] = spec.quantity
        if "autoscaling" in fields:
            changes["autoscaling"] = expand_autoscaling(spec.autoscaling)
        return node_pool_path(key), NodePoolUpdateInput(**changes)

    def delete_paths(self, key: str) -> list[str]:
        return [node_pool_path(key)]

    def declared_fields(self, spec: NodePoolSpec) -> dict[str, Any]:
        return {
            "name": spec.name,
            "cluster": spec.cluster,
            "node_type": spec.node_type,
            "quantity": spec.quantity,
            "labels": dict(spec.labels),
            "taints": set(spec.taints),
            # An omitted block reads back as disabled with zero bounds
            "autoscaling": flatten_autoscaling(expand_autoscaling(spec.autoscaling)),
        }

    def observed_fields(self, observed: NodePoolState) -> dict[str, Any]:
        return {
            "name": observed.name,
            "cluster": observed.cluster,
            "node_type": observed.node_type,
            "quantity": observed.quantity,
            "labels": dict(observed.labels),
            "taints": set(observed.taints),
            "autoscaling": observed.autoscaling,
        }
