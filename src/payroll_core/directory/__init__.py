"""Employee directory access."""

from payroll_core.directory.base import (
    DirectoryTransientError,
    EmployeeDirectoryClient,
    EmployeeRecord,
)
from payroll_core.directory.factory import build_circuit_breaker, build_employee_directory
from payroll_core.directory.local import LocalEmployeeDirectory
from payroll_core.directory.remote import RemoteEmployeeDirectory
from payroll_core.directory.resilient import GET_EMPLOYEE_KEY, ResilientEmployeeDirectory

__all__ = [
    "DirectoryTransientError",
    "EmployeeDirectoryClient",
    "EmployeeRecord",
    "GET_EMPLOYEE_KEY",
    "LocalEmployeeDirectory",
    "RemoteEmployeeDirectory",
    "ResilientEmployeeDirectory",
    "build_circuit_breaker",
    "build_employee_directory",
]
