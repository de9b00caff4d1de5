from typing import Any

from ..clients import ApiClient
from ..core import TEAM_ROLES
from ..errors import ValidationError
from ..schemas.team import (
    TeamMember,
    TeamMemberInvite,
    TeamMemberRoleInput,
    TeamMemberSpec,
    TeamMemberState,
)
from .base import Lookup, Resource

MEMBERS_PATH = "rest/v1/team/member"
INVITES_PATH = f"{MEMBERS_PATH}/invite"


class TeamMemberResource(Resource[TeamMemberSpec, str, TeamMemberState]):
    """
    Team membership keyed by email. A member exists either as an accepted
    member or as a pending invitation; both are looked up in that order.
    """

    entity = "team member"
    spec_model = TeamMemberSpec
    mutable_groups = {"role": ("role",)}
    update_method = "POST"

    def validate(self, spec: TeamMemberSpec) -> None:
        if "@" not in spec.email:
            raise ValidationError(f"team member: {spec.email!r} is not an email address")
        if spec.role not in TEAM_ROLES:
            raise ValidationError(
                f"team member {spec.email!r}: role must be one of "
                f"{', '.join(TEAM_ROLES)}, got {spec.role!r}"
            )

    def build_create_request(self, spec: TeamMemberSpec) -> tuple[str, TeamMemberInvite]:
        return INVITES_PATH, TeamMemberInvite(emails=[spec.email], role=spec.role)

    def key_from_response(self, spec: TeamMemberSpec, response: Any) -> str:
        # The invite endpoint returns nothing useful; the email is the key
        return spec.email

    def lookups(self, client: ApiClient, key: str) -> list[Lookup[TeamMemberState]]:
        def lookup(path: str, accepted: bool) -> Lookup[TeamMemberState]:
            def describe() -> TeamMemberState | None:
                member = client.describe(path, TeamMember)
                if member is None:
                    return None
                return TeamMemberState(
                    email=member.email,
                    role=member.role,
                    accepted_invitation=accepted,
                )

            return describe

        return [
            lookup(f"{MEMBERS_PATH}/{key}", accepted=True),
            lookup(f"{INVITES_PATH}/{key}", accepted=False),
        ]

    def build_update_request(
        self, key: str, spec: TeamMemberSpec, fields: list[str]
    ) -> tuple[str, TeamMemberRoleInput]:
        return f"{MEMBERS_PATH}/{key}", TeamMemberRoleInput(role=spec.role)

    def delete_paths(self, key: str) -> list[str]:
        # Removes the member, or revokes the invitation if never accepted
        return [f"{MEMBERS_PATH}/{key}", f"{INVITES_PATH}/{key}"]

    def observed_fields(self, observed: TeamMemberState) -> dict[str, Any]:
        return {"email": observed.email, "role": observed.role}
