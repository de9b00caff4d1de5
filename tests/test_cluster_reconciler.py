import time

import httpx
import pytest

from skyform.clients import ApiClient
from skyform.errors import (
    ApiError,
    ConvergenceTimeout,
    NotFoundError,
    TransportError,
    ValidationError,
)
from skyform.polling import Backoff
from skyform.reconciler import Reconciler
from skyform.resources.cluster import ClusterResource
from skyform.schemas.cluster import ClusterNode, ClusterSpec

NOT_FOUND_PAYLOAD = (404, {"status": 404, "error": "Not Found", "message": "not found"})


def cluster_payload(state, **extra):
    payload = {
        "id": "cl-123",
        "name": "c1",
        "state": state,
        "kubeVersion": "1.28.2",
        "apiServerEndpoint": "https://c1.k8s.test:6443",
        "isHighlyAvailable": False,
        "region": {"name": "eu-germany-1"},
        "nodePools": [],
    }
    payload.update(extra)
    return payload


IDENTITY = {
    "certificatePem": "CERT",
    "clusterCertificateAuthorityPem": "CA",
    "privateKeyPem": "KEY",
    "kubeConfig": "apiVersion: v1",
}


@pytest.fixture
def clusters(client, no_wait):
    return Reconciler(client, ClusterResource(), backoff=no_wait)


def test_create_waits_until_active(api, clusters):
    api.add("POST", "rest/v1/cluster", (200, {"id": "cl-123", "name": "c1"}))
    api.add(
        "GET",
        "rest/v1/cluster/c1",
        (200, cluster_payload("PENDING")),
        (200, cluster_payload("PENDING")),
        (200, cluster_payload("ACTIVE")),
    )
    api.add("GET", "rest/v1/cluster/c1/identity", (200, IDENTITY))

    spec = ClusterSpec(name="c1", region="eu-germany-1", nodes=[])
    result = clusters.create(spec, wait=True)

    assert result.key == "c1"
    assert result.observed.state == "ACTIVE"
    assert result.observed.id == "cl-123"
    assert result.observed.name == "c1"
    assert result.observed.endpoint == "https://c1.k8s.test:6443"
    assert result.observed.region == "eu-germany-1"
    assert result.observed.kubeconfig == "apiVersion: v1"
    assert result.observed.ca_certificate == "CA"

    assert len(api.calls_to("GET", "rest/v1/cluster/c1")) == 3
    _, _, body = api.calls_to("POST")[0]
    assert body == {
        "name": "c1",
        "region": "eu-germany-1",
        "kubeVersion": "latest",
        "isHighlyAvailable": False,
        "nodes": [],
        "configuration": {"enableNginxIngress": False, "enableCsiDriver": False},
    }


def test_create_without_wait_returns_once_accepted(api, clusters):
    api.add("POST", "rest/v1/cluster", (200, {"id": "cl-123", "name": "c1"}))

    spec = ClusterSpec(
        name="c1",
        region="eu-germany-1",
        nodes=[ClusterNode(node_type="general-int-1", quantity=2)],
    )
    result = clusters.create(spec)

    assert result.key == "c1"
    assert result.observed is None
    assert [c[0] for c in api.calls] == ["POST"]
    _, _, body = api.calls[0]
    assert body["nodes"] == [{"nodeTypeName": "general-int-1", "quantity": 2}]


def test_create_timeout_keeps_identity(api, client):
    api.add("POST", "rest/v1/cluster", (200, {"id": "cl-123", "name": "c1"}))
    api.add("GET", "rest/v1/cluster/c1", (200, cluster_payload("PENDING")))
    clusters = Reconciler(client, ClusterResource(), backoff=Backoff.fixed(0.01))

    with pytest.raises(ConvergenceTimeout) as exc_info:
        clusters.create(
            ClusterSpec(name="c1", region="eu-germany-1"), wait=True, timeout=0.1
        )

    assert exc_info.value.identity == "c1"
    assert exc_info.value.last_state == "PENDING"
    assert "cluster" in str(exc_info.value)


def test_describe_error_during_poll_is_fatal(api, clusters):
    api.add("POST", "rest/v1/cluster", (200, {"id": "cl-123", "name": "c1"}))
    api.add(
        "GET",
        "rest/v1/cluster/c1",
        (200, cluster_payload("PENDING")),
        (500, {"status": 500, "error": "Internal Server Error", "message": "oops"}),
    )

    with pytest.raises(ApiError) as exc_info:
        clusters.create(ClusterSpec(name="c1", region="eu-germany-1"), wait=True)

    assert exc_info.value.status == 500
    # The cluster was accepted, so its key travels with the error
    assert exc_info.value.identity == "c1"
    assert len(api.calls_to("GET")) == 2


def test_identity_fetch_error_reports_key(api, clusters):
    api.add("POST", "rest/v1/cluster", (200, {"id": "cl-123", "name": "c1"}))
    api.add("GET", "rest/v1/cluster/c1", (200, cluster_payload("ACTIVE")))
    api.add(
        "GET",
        "rest/v1/cluster/c1/identity",
        (500, {"status": 500, "error": "Internal Server Error", "message": "no certs"}),
    )

    with pytest.raises(ApiError) as exc_info:
        clusters.create(ClusterSpec(name="c1", region="eu-germany-1"), wait=True)

    assert exc_info.value.identity == "c1"


def test_transport_failure_while_polling_respects_deadline():
    def handler(request):
        if request.method == "POST":
            return httpx.Response(200, json={"id": "cl-123", "name": "c1"})
        raise httpx.ConnectError("connection refused", request=request)

    # Production retry policy: its backoff alone would outlast the deadline
    client = ApiClient(
        "https://api.test", "secret-key", transport=httpx.MockTransport(handler)
    )
    clusters = Reconciler(client, ClusterResource(), backoff=Backoff.fixed(0.1))

    started = time.monotonic()
    with pytest.raises(TransportError) as exc_info:
        clusters.create(
            ClusterSpec(name="c1", region="eu-germany-1"), wait=True, timeout=1
        )
    elapsed = time.monotonic() - started
    client.close()

    assert elapsed < 1 + 0.1
    assert exc_info.value.identity == "c1"


def test_zero_timeout_probes_once(api, clusters):
    api.add("POST", "rest/v1/cluster", (200, {"id": "cl-123", "name": "c1"}))
    api.add("GET", "rest/v1/cluster/c1", (200, cluster_payload("PENDING")))

    with pytest.raises(ConvergenceTimeout):
        clusters.create(
            ClusterSpec(name="c1", region="eu-germany-1"), wait=True, timeout=0
        )

    assert len(api.calls_to("GET", "rest/v1/cluster/c1")) == 1


@pytest.mark.parametrize("quantity", [0, -3])
def test_create_rejects_non_positive_node_quantity(api, clusters, quantity):
    spec = ClusterSpec(
        name="c1",
        region="eu-germany-1",
        nodes=[ClusterNode(node_type="general-int-1", quantity=quantity)],
    )

    with pytest.raises(ValidationError):
        clusters.create(spec)

    assert api.calls == []


def test_create_api_error_propagates(api, clusters):
    api.add(
        "POST",
        "rest/v1/cluster",
        (400, {"status": 400, "error": "Bad Request", "message": "Unknown region"}),
    )

    with pytest.raises(ApiError, match="Unknown region"):
        clusters.create(ClusterSpec(name="c1", region="mars-1"), wait=True)

    assert len(api.calls) == 1


def test_delete_twice_succeeds(api, clusters):
    api.add("DELETE", "rest/v1/cluster/c1", (200, None), NOT_FOUND_PAYLOAD)

    clusters.delete("c1")
    clusters.delete("c1")

    assert len(api.calls_to("DELETE")) == 2


def test_delete_waits_until_absent(api, clusters):
    api.add("DELETE", "rest/v1/cluster/c1", (200, None))
    api.add(
        "GET",
        "rest/v1/cluster/c1",
        (200, cluster_payload("DELETE_IN_PROGRESS")),
        NOT_FOUND_PAYLOAD,
    )

    clusters.delete("c1", wait=True)

    assert len(api.calls_to("GET", "rest/v1/cluster/c1")) == 2


def test_delete_of_missing_cluster_skips_polling(api, clusters):
    clusters.delete("gone", wait=True)

    assert [c[0] for c in api.calls] == ["DELETE"]


def test_read_absent_cluster(clusters):
    assert clusters.read("c1") is None


def test_read_without_identity(api, clusters):
    api.add("GET", "rest/v1/cluster/c1", (200, cluster_payload("PENDING")))

    observed = clusters.read("c1")

    assert observed.state == "PENDING"
    assert observed.kubeconfig is None


def test_lookup_requires_existence(clusters):
    with pytest.raises(NotFoundError):
        clusters.lookup("c1")


def test_update_rejects_any_change(api, clusters):
    current = ClusterSpec(name="c1", region="eu-germany-1")
    desired = ClusterSpec(name="c1", region="eu-france-1")

    with pytest.raises(ValidationError, match="region"):
        clusters.update("c1", current, desired)

    assert api.calls == []


def test_update_without_changes_is_noop(api, clusters):
    spec = ClusterSpec(name="c1", region="eu-germany-1")

    assert clusters.update("c1", spec, spec) == []
    assert api.calls == []


def test_detect_drift(api, clusters):
    api.add("GET", "rest/v1/cluster/c1", (200, cluster_payload("ACTIVE")))
    observed = clusters.read("c1")

    # "latest" never drifts against the resolved version
    spec = ClusterSpec(name="c1", region="eu-germany-1")
    assert clusters.detect_drift(spec, observed) == []

    drift = clusters.detect_drift(
        ClusterSpec(name="c1", region="eu-france-1", kube_version="1.27"), observed
    )
    fields = {d.field: d for d in drift}
    assert set(fields) == {"region", "kube_version"}
    assert fields["region"].observed == "eu-germany-1"
    assert all(d.requires_replacement for d in drift)

