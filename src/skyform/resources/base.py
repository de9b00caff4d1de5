from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from ..clients import ApiClient
from ..core import CREATE_TIMEOUT, DELETE_TIMEOUT
from ..schemas.common import SpecModel, WireModel

SpecT = TypeVar("SpecT", bound=SpecModel)
KeyT = TypeVar("KeyT")
ObservedT = TypeVar("ObservedT", bound=BaseModel)
T = TypeVar("T")

Lookup = Callable[[], T | None]


def first_present(*lookups: Lookup[T]) -> T | None:
    """
    Runs lookups in order and returns the first non-absent result.
    Later lookups are not called once one succeeds.
    """
    for lookup in lookups:
        found = lookup()
        if found is not None:
            return found
    return None


class Resource(Generic[SpecT, KeyT, ObservedT]):
    """
    Capabilities the generic Reconciler needs for one entity type.

    Subclasses describe request shapes and how to decode observed state;
    the control flow (validate, call, poll, classify errors) lives in
    Reconciler and is shared by every entity.
    """

    entity: str = "resource"
    spec_model: type[SpecModel] = SpecModel
    # Groups of fields that may be patched in place; one update call per group.
    # Every other spec field is an identity field.
    mutable_groups: dict[str, tuple[str, ...]] = {}
    update_method: str = "PUT"
    create_response_model: type[WireModel] | None = None
    create_timeout: float = CREATE_TIMEOUT
    delete_timeout: float = DELETE_TIMEOUT
    converged_state: str = "present"

    @property
    def mutable_fields(self) -> frozenset[str]:
        return frozenset(f for group in self.mutable_groups.values() for f in group)

    @property
    def identity_fields(self) -> frozenset[str]:
        return frozenset(self.spec_model.model_fields) - self.mutable_fields

    def validate(self, spec: SpecT) -> None:
        pass

    def build_create_request(self, spec: SpecT) -> tuple[str, WireModel]:
        raise NotImplementedError

    def key_from_response(self, spec: SpecT, response: Any) -> KeyT:
        raise NotImplementedError

    def lookups(self, client: ApiClient, key: KeyT) -> list[Lookup[ObservedT]]:
        raise NotImplementedError

    def describe(self, client: ApiClient, key: KeyT) -> ObservedT | None:
        return first_present(*self.lookups(client, key))

    def enrich(self, client: ApiClient, key: KeyT, observed: ObservedT) -> ObservedT:
        """Fetch attributes that are not part of the describe payload."""
        return observed

    def build_update_request(
        self, key: KeyT, spec: SpecT, fields: list[str]
    ) -> tuple[str, WireModel]:
        raise NotImplementedError(f"{self.entity} cannot be updated in place")

    def delete_paths(self, key: KeyT) -> list[str]:
        raise NotImplementedError

    def is_converged(self, observed: ObservedT) -> bool:
        return True

    def state_of(self, observed: ObservedT) -> str | None:
        return None

    def declared_fields(self, spec: SpecT) -> dict[str, Any]:
        return {name: getattr(spec, name) for name in self.spec_model.model_fields}

    def observed_fields(self, observed: ObservedT) -> dict[str, Any]:
        """Observed attributes keyed by the spec field they correspond to."""
        return {}
