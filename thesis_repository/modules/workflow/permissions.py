"""
Role to capability resolution.

Capabilities are derived from the role on every check and never stored.
Unknown or missing roles resolve to the empty set.
"""
import enum
from typing import Dict, FrozenSet, Optional, Union

from thesis_repository.models.user import UserRole


class Capability(str, enum.Enum):
    UPLOAD = "can_upload"
    DOWNLOAD = "can_download"
    VIEW = "can_view"
    REVIEW = "can_review"
    APPROVE = "can_approve"
    EDIT = "can_edit"
    DELETE = "can_delete"
    MANAGE_USERS = "can_manage_users"
    VIEW_ANALYTICS = "can_view_analytics"
    MANAGE_CATEGORIES = "can_manage_categories"
    BULK_IMPORT = "can_bulk_import"
    EXPORT = "can_export"
    MANAGE_WORKFLOW = "can_manage_workflow"

    def __str__(self) -> str:
        return self.value


CapabilitySet = FrozenSet[Capability]

EMPTY: CapabilitySet = frozenset()

ROLE_CAPABILITIES: Dict[UserRole, CapabilitySet] = {
    UserRole.STUDENT: frozenset({
        Capability.UPLOAD,
        Capability.DOWNLOAD,
        Capability.VIEW,
    }),
    UserRole.FACULTY: frozenset({
        Capability.UPLOAD,
        Capability.DOWNLOAD,
        Capability.VIEW,
        Capability.REVIEW,
        Capability.APPROVE,
        Capability.EDIT,
        Capability.VIEW_ANALYTICS,
        Capability.EXPORT,
    }),
    UserRole.LIBRARIAN: frozenset(set(Capability) - {Capability.MANAGE_USERS}),
    UserRole.ADMIN: frozenset(Capability),
}


def coerce_role(role: Union[UserRole, str, None]) -> Optional[UserRole]:
    if isinstance(role, UserRole):
        return role
    if not role:
        return None
    try:
        return UserRole(str(role).lower())
    except ValueError:
        return None


def _coerce_capability(name: Union[Capability, str]) -> Optional[Capability]:
    if isinstance(name, Capability):
        return name
    try:
        return Capability(name)
    except ValueError:
        return None


def resolve(role: Union[UserRole, str, None]) -> CapabilitySet:
    """Capability set for a role"""
    user_role = coerce_role(role)
    if user_role is None:
        return EMPTY
    return ROLE_CAPABILITIES.get(user_role, EMPTY)


def has_capability(role: Union[UserRole, str, None], name: Union[Capability, str]) -> bool:
    capability = _coerce_capability(name)
    return capability is not None and capability in resolve(role)


def permissions_for(role: Union[UserRole, str, None]) -> Dict[str, bool]:
    """Full capability map, every capability present as True/False"""
    granted = resolve(role)
    return {cap.value: cap in granted for cap in Capability}


def can_transition(rule, role: Union[UserRole, str, None], is_owner: bool = False) -> bool:
    """Whether a role (and ownership) satisfies a TransitionRule"""
    if rule is None:
        return False
    if rule.owner_allowed and is_owner:
        return True
    return bool(rule.required_any & resolve(role))
