from tenacity import retry_if_exception_type, stop_after_attempt, wait_exponential

from .errors import TransportError

DEFAULT_ENDPOINT = "https://api.symbiosis.host"

# Header carrying the static API key on every request
API_KEY_HEADER = "X-Auth-ApiKey"

# Shared retry configuration for idempotent requests (GET/DELETE)
# usage: retry(**TRANSPORT_RETRY_CONFIG)(func)
# Only transport failures are retried; the last one is re-raised.
TRANSPORT_RETRY_CONFIG = {
    "stop": stop_after_attempt(3),
    "wait": wait_exponential(multiplier=1, min=4, max=10),
    "retry": retry_if_exception_type(TransportError),
    "reraise": True,
}

# Default convergence deadlines (seconds)
CREATE_TIMEOUT = 10 * 60
DELETE_TIMEOUT = 20 * 60

# Cluster lifecycle states reported by the API
CLUSTER_STATES = ["PENDING", "ACTIVE", "DELETE_IN_PROGRESS", "FAILED"]
CLUSTER_ACTIVE = "ACTIVE"

# Kubernetes scheduler effects accepted for node taints
TAINT_EFFECTS = ["NoSchedule", "PreferNoSchedule", "NoExecute"]

TEAM_ROLES = ["MEMBER", "ADMIN"]

# Autoscaling bounds enforced by the API
AUTOSCALING_MIN_SIZE = 2
AUTOSCALING_MAX_SIZE = 100
