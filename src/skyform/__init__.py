from .clients import ApiClient, connect
from .provider import reconciler_for
from .reconciler import CreateResult, FieldDrift, Reconciler

__all__ = [
    "ApiClient",
    "CreateResult",
    "FieldDrift",
    "Reconciler",
    "connect",
    "reconciler_for",
]
