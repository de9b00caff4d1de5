from typing import Any

from ..clients import ApiClient
from ..errors import ValidationError
from ..schemas.service_account import (
    ServiceAccount,
    ServiceAccountInput,
    ServiceAccountKey,
    ServiceAccountSpec,
    ServiceAccountState,
)
from .base import Lookup, Resource
from .cluster import cluster_path


def service_accounts_path(cluster_name: str) -> str:
    return f"{cluster_path(cluster_name)}/user-service-account"


class ServiceAccountResource(
    Resource[ServiceAccountSpec, ServiceAccountKey, ServiceAccountState]
):
    """Service accounts bound to the calling user, scoped to one cluster."""

    entity = "service account"
    spec_model = ServiceAccountSpec
    create_response_model = ServiceAccount

    def validate(self, spec: ServiceAccountSpec) -> None:
        if not spec.cluster_name:
            raise ValidationError("service account: cluster_name must not be empty")

    def build_create_request(
        self, spec: ServiceAccountSpec
    ) -> tuple[str, ServiceAccountInput]:
        return service_accounts_path(spec.cluster_name), ServiceAccountInput()

    def key_from_response(
        self, spec: ServiceAccountSpec, response: ServiceAccount
    ) -> ServiceAccountKey:
        return ServiceAccountKey(spec.cluster_name, response.id)

    def lookups(
        self, client: ApiClient, key: ServiceAccountKey
    ) -> list[Lookup[ServiceAccountState]]:
        def describe_service_account() -> ServiceAccountState | None:
            account = client.describe(
                f"{service_accounts_path(key.cluster_name)}/{key.id}", ServiceAccount
            )
            if account is None:
                return None
            return ServiceAccountState(
                id=account.id,
                cluster_name=key.cluster_name,
                token=account.service_account_token,
                cluster_ca_certificate=account.cluster_certificate_authority,
                kubeconfig=account.kube_config,
            )

        return [describe_service_account]

    def delete_paths(self, key: ServiceAccountKey) -> list[str]:
        return [f"{service_accounts_path(key.cluster_name)}/{key.id}"]

    def observed_fields(self, observed: ServiceAccountState) -> dict[str, Any]:
        return {"cluster_name": observed.cluster_name}
