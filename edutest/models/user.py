from datetime import datetime

from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.orm import relationship

from edutest.database import Base
from edutest.models.roles import Role


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(
        Enum(Role, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.CANDIDATE,
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    sessions = relationship("TestSession", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
