from dataclasses import dataclass
from typing import Any, Generic

from .clients import ApiClient
from .errors import NotFoundError, SkyformError, ValidationError
from .logger import logger
from .polling import (
    Backoff,
    Converged,
    Deadline,
    FatalError,
    ProbeOutcome,
    RetryableNotYet,
    poll_until_converged,
)
from .resources.base import KeyT, ObservedT, Resource, SpecT


@dataclass(frozen=True)
class CreateResult(Generic[KeyT, ObservedT]):
    key: KeyT
    # None unless the create waited for convergence
    observed: ObservedT | None = None


@dataclass(frozen=True)
class FieldDrift:
    field: str
    desired: Any
    observed: Any
    requires_replacement: bool


class Reconciler(Generic[SpecT, KeyT, ObservedT]):
    """
    Create/Read/Update/Delete for one entity type.

    Every call blocks until the API call (and the optional convergence
    poll) finishes. API, transport and validation errors are raised
    unchanged; only the polling loop retries.
    """

    def __init__(
        self,
        client: ApiClient,
        resource: Resource[SpecT, KeyT, ObservedT],
        backoff: Backoff | None = None,
    ):
        self.client = client
        self.resource = resource
        self.backoff = backoff

    @property
    def entity(self) -> str:
        return self.resource.entity

    # Probes

    def _converged_probe(self, key: KeyT, deadline: Deadline) -> Any:
        resource = self.resource

        def probe() -> ProbeOutcome:
            # Transport retries inside a probe stop at the deadline too
            client = self.client.bounded(deadline.remaining())
            try:
                observed = resource.describe(client, key)
            except SkyformError as e:
                return FatalError(e)
            if observed is None:
                return RetryableNotYet(f"{self.entity} {key!r} is not visible yet")
            if resource.is_converged(observed):
                return Converged(observed)
            state = resource.state_of(observed)
            return RetryableNotYet(
                f"expected {self.entity} to be {resource.converged_state} "
                f"but was in state {state}",
                state,
            )

        return probe

    def _absent_probe(self, key: KeyT, deadline: Deadline) -> Any:
        resource = self.resource

        def probe() -> ProbeOutcome:
            client = self.client.bounded(deadline.remaining())
            try:
                observed = resource.describe(client, key)
            except SkyformError as e:
                return FatalError(e)
            if observed is None:
                return Converged()
            return RetryableNotYet(
                f"expected {self.entity} to get removed but it is still returned "
                "from the api",
                resource.state_of(observed),
            )

        return probe

    # Operations

    def create(
        self, spec: SpecT, wait: bool = False, timeout: float | None = None
    ) -> CreateResult[KeyT, ObservedT]:
        if timeout is None:
            timeout = self.resource.create_timeout
        deadline = Deadline.after(timeout)
        self.resource.validate(spec)

        path, request = self.resource.build_create_request(spec)
        logger.debug(f"Creating {self.entity}: {request.to_wire()}")
        response = self.client.create(
            path, request.to_wire(), self.resource.create_response_model
        )
        key = self.resource.key_from_response(spec, response)
        logger.info(f"Created {self.entity} {key!r}")

        if not wait:
            return CreateResult(key=key)

        try:
            result = poll_until_converged(
                self._converged_probe(key, deadline),
                deadline,
                self.backoff,
                entity=self.entity,
                action="create",
                identity=key,
            )
            observed = self.resource.enrich(self.client, key, result.value)
        except SkyformError as e:
            # The entity exists remotely; the caller must still learn its key
            e.identity = key
            raise
        logger.info(
            f"{self.entity} {key!r} converged after {result.attempts} probes "
            f"({result.elapsed:.1f}s)"
        )
        return CreateResult(key=key, observed=observed)

    def read(self, key: KeyT) -> ObservedT | None:
        """
        Current attributes, or None when the entity no longer exists and the
        caller should drop its persisted identity.
        """
        logger.debug(f"Reading {self.entity} {key!r}")
        observed = self.resource.describe(self.client, key)
        if observed is None:
            logger.info(f"{self.entity} {key!r} no longer exists")
            return None
        return self.resource.enrich(self.client, key, observed)

    def lookup(self, key: KeyT) -> ObservedT:
        """Like read, for callers that require the entity to exist."""
        observed = self.read(key)
        if observed is None:
            raise NotFoundError(self.entity, key)
        return observed

    def update(self, key: KeyT, current: SpecT, desired: SpecT) -> list[str]:
        """
        Patches the mutable groups whose fields differ between `current` and
        `desired`. Returns the names of the groups that were sent.
        """
        changed = {
            name
            for name in self.resource.spec_model.model_fields
            if getattr(current, name) != getattr(desired, name)
        }
        replaced = sorted(changed & self.resource.identity_fields)
        if replaced:
            raise ValidationError(
                f"Cannot update {self.entity} {key!r} in place: changing "
                f"{', '.join(replaced)} requires replacement"
            )
        self.resource.validate(desired)

        patched = []
        for group, fields in self.resource.mutable_groups.items():
            group_changes = [name for name in fields if name in changed]
            if not group_changes:
                continue
            path, request = self.resource.build_update_request(key, desired, group_changes)
            logger.debug(f"Updating {self.entity} {key!r} ({group}): {request.to_wire()}")
            self.client.update(
                path, request.to_wire(), method=self.resource.update_method
            )
            patched.append(group)

        if not patched:
            logger.debug(f"{self.entity} {key!r} is up to date")
        return patched

    def delete(self, key: KeyT, wait: bool = False, timeout: float | None = None) -> None:
        """Deleting an entity that is already gone succeeds."""
        if timeout is None:
            timeout = self.resource.delete_timeout
        deadline = Deadline.after(timeout)
        logger.debug(f"Deleting {self.entity} {key!r}")

        deleted = False
        for path in self.resource.delete_paths(key):
            if self.client.delete(path):
                deleted = True
                break

        if not deleted:
            logger.info(f"{self.entity} {key!r} was already gone")
            return

        if wait:
            result = poll_until_converged(
                self._absent_probe(key, deadline),
                deadline,
                self.backoff,
                entity=self.entity,
                action="delete",
                identity=key,
            )
            logger.info(f"{self.entity} {key!r} removed after {result.attempts} probes")

    def detect_drift(self, spec: SpecT, observed: ObservedT) -> list[FieldDrift]:
        declared = self.resource.declared_fields(spec)
        actual = self.resource.observed_fields(observed)
        drift = []
        for name, value in actual.items():
            if name in declared and declared[name] != value:
                drift.append(
                    FieldDrift(
                        field=name,
                        desired=declared[name],
                        observed=value,
                        requires_replacement=name in self.resource.identity_fields,
                    )
                )
        return drift
