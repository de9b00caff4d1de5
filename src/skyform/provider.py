from .clients import ApiClient
from .polling import Backoff
from .reconciler import Reconciler
from .resources.base import Resource
from .resources.cluster import ClusterResource
from .resources.node_pool import NodePoolResource
from .resources.service_account import ServiceAccountResource
from .resources.team_member import TeamMemberResource

# Managed entity types by the name operators use for them
RESOURCES: dict[str, type[Resource]] = {
    "cluster": ClusterResource,
    "node-pool": NodePoolResource,
    "team-member": TeamMemberResource,
    "service-account": ServiceAccountResource,
}


def reconciler_for(
    kind: str, client: ApiClient, backoff: Backoff | None = None
) -> Reconciler:
    try:
        resource_cls = RESOURCES[kind]
    except KeyError:
        raise ValueError(
            f"Unknown resource kind {kind!r}, expected one of {', '.join(RESOURCES)}"
        ) from None
    return Reconciler(client, resource_cls(), backoff=backoff)
