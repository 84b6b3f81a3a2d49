"""
Team Models

TeamMember records a person's place in an organization. A pending
member has no member_user_id yet and is paired with a TeamInvitation
carrying the emailed token; accepting the invitation fills in the user
and deletes the invitation row.

user_id is the plan owner (the organization owner) the membership is
recorded under, invited_by is whoever sent the invitation.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from teamdesk.database import Base
import uuid
import enum


class MemberRole(str, enum.Enum):
    """
    Roles a team member can hold.

    The organization owner is not a member row; "owner" only exists as
    an effective role (see teamdesk.core.permissions).
    """
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class MemberStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REMOVED = "removed"


class TeamMember(Base):
    __tablename__ = "team_members"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    organization_id = Column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    # Null until the invitation is accepted
    member_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    invited_by = Column(String(36), ForeignKey("users.id"), nullable=True)

    role = Column(SQLEnum(MemberRole), default=MemberRole.MEMBER, nullable=False)
    status = Column(SQLEnum(MemberStatus), default=MemberStatus.PENDING, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    organization = relationship("Organization", back_populates="team_members")
    member = relationship("User", foreign_keys=[member_user_id])
    invitation = relationship(
        "TeamInvitation",
        back_populates="team_member",
        uselist=False,
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index('idx_team_member_org_status', 'organization_id', 'status'),
        Index('idx_team_member_member_status', 'member_user_id', 'status'),
        Index('idx_team_member_owner_status', 'user_id', 'status'),
    )

    def __repr__(self):
        return f"<TeamMember {self.id} role={self.role} status={self.status}>"


class TeamInvitation(Base):
    __tablename__ = "team_invitations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    token = Column(String(64), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)

    team_member_id = Column(
        String(36),
        ForeignKey("team_members.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    team_member = relationship("TeamMember", back_populates="invitation")

    def __repr__(self):
        return f"<TeamInvitation {self.email} (member={self.team_member_id})>"

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= datetime.utcnow()
