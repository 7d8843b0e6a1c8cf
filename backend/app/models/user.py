"""
User database model.

Staff accounts for the reception application (admins, managers, front desk).
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import UserRole, UserStatus


class User(Base):
    """
    User model for authentication and user management.

    ``entrepot_id`` scopes a non-admin user to a single warehouse; without one
    they see no warehouse. Admins see every warehouse either way.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    nom = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    role = Column(Enum(UserRole), default=UserRole.OPERATOR, nullable=False)
    status = Column(Enum(UserStatus), default=UserStatus.ACTIF, nullable=False, index=True)

    entrepot_id = Column(
        Integer, ForeignKey("warehouses.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIF

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role.value}', status='{self.status.value}')>"
