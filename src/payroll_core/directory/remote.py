"""Employee directory served by the HR core service over HTTP."""

from __future__ import annotations

import logging
from typing import Callable, Iterable

import httpx

from payroll_core.directory.base import DirectoryTransientError, EmployeeRecord

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


class RemoteEmployeeDirectory:
    """Calls ``GET {base_url}/v1/hrcore/employees/{id}``.

    Responses are ``{"data": {...employee...}}``. A 404 is an authoritative
    "not found"; timeouts, connection errors and 5xx responses raise
    ``DirectoryTransientError`` so the caller can retry.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        token_provider: TokenProvider | None = None,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token_provider = token_provider
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def get_employee_by_id(self, employee_id: str) -> EmployeeRecord | None:
        url = f"{self.base_url}/v1/hrcore/employees/{employee_id}"
        try:
            response = self._client.get(url, headers=self._headers(), timeout=self.timeout)
        except httpx.HTTPError as exc:
            raise DirectoryTransientError(
                f"HR core request failed: {exc}", employee_id=employee_id
            ) from exc

        if response.status_code == 404:
            return None
        if response.status_code >= 500 or response.status_code == 429:
            raise DirectoryTransientError(
                f"HR core returned {response.status_code}", employee_id=employee_id
            )
        if response.status_code != 200:
            logger.warning(
                "HR core returned %s for employee %s", response.status_code, employee_id
            )
            return None

        try:
            payload = response.json()
        except ValueError as exc:
            raise DirectoryTransientError(
                "HR core returned a non-JSON body", employee_id=employee_id
            ) from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        if not data:
            return None
        return EmployeeRecord.from_mapping(data)

    def get_employees_by_ids(self, employee_ids: Iterable[str]) -> dict[str, EmployeeRecord]:
        result: dict[str, EmployeeRecord] = {}
        for employee_id in sorted(set(employee_ids)):
            record = self.get_employee_by_id(employee_id)
            if record is not None:
                result[employee_id] = record
        return result

    def is_employee_active(self, employee_id: str) -> bool:
        record = self.get_employee_by_id(employee_id)
        return record is not None and record.is_active

    def get_employee_department_id(self, employee_id: str) -> str | None:
        record = self.get_employee_by_id(employee_id)
        return record.department_id if record is not None else None
