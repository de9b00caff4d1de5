from typing import NamedTuple

from pydantic import BaseModel

from .common import SpecModel, WireModel


class ServiceAccountKey(NamedTuple):
    cluster_name: str
    id: str


class ServiceAccountSpec(SpecModel):
    cluster_name: str


class ServiceAccountState(BaseModel):
    id: str
    cluster_name: str
    token: str | None = None
    cluster_ca_certificate: str | None = None
    kubeconfig: str | None = None


# Wire shapes


class ServiceAccount(WireModel):
    id: str
    service_account_token: str | None = None
    cluster_certificate_authority: str | None = None
    kube_config: str | None = None


class ServiceAccountInput(WireModel):
    """The account is created for the calling user; no attributes are sent."""
