from pydantic import BaseModel, Field

from .common import SpecModel, WireModel


class TeamMemberSpec(SpecModel):
    email: str = Field(description="User email to invite")
    role: str = Field(description="MEMBER or ADMIN")


class TeamMemberState(BaseModel):
    email: str
    role: str
    accepted_invitation: bool


# Wire shapes


class TeamMember(WireModel):
    email: str
    role: str


class TeamMemberInvite(WireModel):
    emails: list[str]
    role: str


class TeamMemberRoleInput(WireModel):
    role: str
