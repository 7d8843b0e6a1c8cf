"""
User enumerations.

Defines the role and account-status types for the reception application.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Validates or refuses trucks, manages warehouses and users
        OPERATOR: Warehouse manager ("gérant"), records analyses and products
        DRIVER: Read-only access to their warehouse
        SECURITY: Front desk, registers arriving trucks
    """
    ADMIN = "admin"
    OPERATOR = "operator"
    DRIVER = "driver"
    SECURITY = "security"


class UserStatus(str, enum.Enum):
    """Account status. Only ACTIF accounts can log in."""
    ACTIF = "Actif"
    INACTIF = "Inactif"
    EN_ATTENTE = "En attente"
