"""
Verification Token Model

Single-use tokens emailed to a user for password resets and email
verification. identifier is the (lower-cased) email the token was sent
to; a user holds at most one live token of each type.
"""
from sqlalchemy import Column, String, DateTime, Index
from datetime import datetime
from teamdesk.database import Base
import uuid

EMAIL_VERIFICATION = "email_verification"
PASSWORD_RESET = "password_reset"


class VerificationToken(Base):
    __tablename__ = "verification_tokens"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    identifier = Column(String(255), nullable=False)
    token = Column(String(64), unique=True, nullable=False, index=True)
    type = Column(String(50), nullable=False, default=EMAIL_VERIFICATION)
    expires = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_verification_identifier_type', 'identifier', 'type'),
    )

    def __repr__(self):
        return f"<VerificationToken {self.type} for {self.identifier}>"

    @property
    def is_expired(self) -> bool:
        return self.expires <= datetime.utcnow()
