"""
Capability checks

Role/employee-type rules are evaluated in one place: every service call
receives a ``CallerContext`` and asks ``can_perform`` (or ``ensure_can``)
whether the caller may perform an action on a resource owned by a company.
"""
import enum
from dataclasses import dataclass
from typing import FrozenSet, Optional

from app.exceptions import AccessDeniedError
from app.models.user import EmployeeType, UserRole


class Action(str, enum.Enum):
    VIEW_CATALOG = "view_catalog"
    MANAGE_CATALOG = "manage_catalog"
    MANAGE_PRICING_TIER = "manage_pricing_tier"
    CREATE_JOB = "create_job"
    EDIT_JOB = "edit_job"
    READ_JOB = "read_job"
    MANAGE_OVERRIDES = "manage_overrides"
    VIEW_PROJECTION = "view_projection"


_COMPANY_ADMIN_ACTIONS = frozenset({
    Action.VIEW_CATALOG,
    Action.CREATE_JOB,
    Action.EDIT_JOB,
    Action.READ_JOB,
    Action.MANAGE_OVERRIDES,
    Action.VIEW_PROJECTION,
})

_PRODUCTION_MANAGER_ACTIONS = frozenset({
    Action.VIEW_CATALOG,
    Action.CREATE_JOB,
    Action.EDIT_JOB,
    Action.READ_JOB,
    Action.VIEW_PROJECTION,
})

_EMPLOYEE_ACTIONS = frozenset({
    Action.VIEW_CATALOG,
    Action.READ_JOB,
    Action.VIEW_PROJECTION,
})

# Actions that do not target a company-owned resource
_GLOBAL_ACTIONS = frozenset({Action.VIEW_CATALOG})


@dataclass(frozen=True)
class CallerContext:
    user_id: Optional[int]
    company_id: Optional[int]
    role: UserRole
    employee_type: Optional[EmployeeType] = None

    @property
    def is_operator(self) -> bool:
        return self.role == UserRole.SUPERADMIN

    @classmethod
    def from_user(cls, user) -> "CallerContext":
        return cls(
            user_id=user.id,
            company_id=user.company_id,
            role=user.role,
            employee_type=user.employee_type,
        )


def capabilities(ctx: CallerContext) -> FrozenSet[Action]:
    if ctx.role == UserRole.SUPERADMIN:
        return frozenset(Action)
    if ctx.role == UserRole.COMPANY:
        return _COMPANY_ADMIN_ACTIONS
    if ctx.role == UserRole.EMPLOYEE:
        if ctx.employee_type == EmployeeType.PRODUCTION_MANAGER:
            return _PRODUCTION_MANAGER_ACTIONS
        return _EMPLOYEE_ACTIONS
    return frozenset()


def can_perform(
    ctx: CallerContext,
    action: Action,
    resource_company_id: Optional[int] = None,
) -> bool:
    if action not in capabilities(ctx):
        return False
    if ctx.is_operator or action in _GLOBAL_ACTIONS:
        return True
    return ctx.company_id is not None and ctx.company_id == resource_company_id


def ensure_can(
    ctx: CallerContext,
    action: Action,
    resource_company_id: Optional[int] = None,
) -> None:
    if not can_perform(ctx, action, resource_company_id):
        raise AccessDeniedError(
            f"Access denied: cannot {action.value.replace('_', ' ')}",
            details={
                "action": action.value,
                "company_id": resource_company_id,
            },
        )


def target_company_id(ctx: CallerContext, requested_company_id: Optional[int]) -> Optional[int]:
    """
    Company a request acts on.

    Company users always act on their own company; an explicit company id is
    only honoured for the platform operator.
    """
    if ctx.is_operator:
        return requested_company_id
    if requested_company_id is not None and requested_company_id != ctx.company_id:
        raise AccessDeniedError(
            "Access denied to this company",
            details={"company_id": requested_company_id},
        )
    return ctx.company_id
