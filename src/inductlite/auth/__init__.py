from .roles import UserRole, Permission, has_permission

__all__ = ["UserRole", "Permission", "has_permission"]
