"""API routes."""

from payroll_core.api.routes.audit import router as audit_router
from payroll_core.api.routes.health import router as health_router
from payroll_core.api.routes.payroll import router as payroll_router

__all__ = ["audit_router", "health_router", "payroll_router"]
