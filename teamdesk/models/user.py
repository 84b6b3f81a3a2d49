"""
User Model

A user is a single account identified by email. Users own organizations
and workspaces, or join them through team membership. The onboarding
answers collected by the signup wizard live on the user row.
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, JSON, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from teamdesk.database import Base
import uuid


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Credentials and profile
    # Emails are always stored lower-case; lookups lower-case their input
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)

    # Account status
    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)

    # Onboarding progress
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    onboarding_completed_at = Column(DateTime, nullable=True)
    onboarding_current_step = Column(Integer, default=1, nullable=False)

    # Step 1: use cases
    use_cases = Column(JSON, nullable=True)
    other_use_case = Column(Text, nullable=True)

    # Step 2: professional / company info
    professional_role = Column(String(100), nullable=True)
    other_professional_role = Column(String(255), nullable=True)
    company_size = Column(String(50), nullable=True)
    industry = Column(String(100), nullable=True)
    other_industry = Column(String(255), nullable=True)

    # Step 3: CMS integration
    cms_integration = Column(String(100), nullable=True)
    other_cms = Column(String(255), nullable=True)

    # Step 5: discovery
    discovery_source = Column(String(100), nullable=True)
    other_discovery_source = Column(String(255), nullable=True)
    previous_attempts = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    # Relationships
    owned_organizations = relationship("Organization", back_populates="owner")
    owned_workspaces = relationship(
        "Workspace",
        back_populates="owner",
        foreign_keys="Workspace.owner_id"
    )

    __table_args__ = (
        Index('idx_user_active', 'is_active'),
    )

    def __repr__(self):
        return f"<User {self.email}>"

    @property
    def display_name(self) -> str:
        """Name shown to other users (falls back to the email)."""
        return self.full_name or self.email
