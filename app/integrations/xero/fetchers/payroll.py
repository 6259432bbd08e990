"""
Payroll Fetcher
Fetches employees from the Xero Payroll (AU) API.

Payroll is an optional Xero product and needs its own scopes, so several
error statuses are answered as "payroll not available" instead of failing.
"""

import logging
from typing import Any, Optional, TypedDict

import httpx

from app.integrations.xero.exceptions import XeroDataFetchError
from app.integrations.xero.fetchers.base import BaseFetcher
from app.integrations.xero.utils import parse_currency_value, parse_xero_date

logger = logging.getLogger(__name__)

NEEDS_RECONNECT_MESSAGE = (
    "Payroll access not authorized. Please disconnect and reconnect Xero "
    "from the Integrations page to grant payroll access."
)
PAYROLL_DISABLED_MESSAGE = (
    "Xero Payroll is not enabled for this organization. "
    "You can still manually add team members."
)


class Employee(TypedDict):
    employee_id: str
    first_name: str
    last_name: str
    full_name: str
    job_title: Optional[str]
    start_date: Optional[str]
    termination_date: Optional[str]
    annual_salary: Optional[float]
    hourly_rate: Optional[float]
    employment_type: Optional[str]
    is_active: bool
    email: Optional[str]
    from_xero: bool


class PayrollResult(TypedDict, total=False):
    success: bool
    employees: list[Employee]
    count: int
    payroll_available: bool
    needs_reconnect: bool
    message: str


class PayrollFetcher(BaseFetcher):
    """Fetcher for payroll employees."""

    EMPLOYEES_ENDPOINT = "/payroll.xro/1.0/Employees"

    async def fetch_employees(self, include_terminated: bool = False) -> PayrollResult:
        """
        Fetch employees, sorted by full name.

        Args:
            include_terminated: Also return terminated employees

        Returns:
            PayrollResult; payroll_available is False when the organization
            has no payroll access

        Raises:
            XeroDataFetchError: For error statuses other than 401/403/404
        """
        try:
            data = await self._get(self.EMPLOYEES_ENDPOINT)
        except XeroDataFetchError as e:
            if e.status_code == 401:
                logger.info("Payroll scopes not authorized for tenant %s", self.tenant_id)
                return PayrollResult(
                    success=True,
                    employees=[],
                    payroll_available=False,
                    needs_reconnect=True,
                    message=NEEDS_RECONNECT_MESSAGE,
                )
            if e.status_code in (403, 404):
                logger.info("Payroll not available for tenant %s", self.tenant_id)
                return PayrollResult(
                    success=True,
                    employees=[],
                    payroll_available=False,
                    message=PAYROLL_DISABLED_MESSAGE,
                )
            raise

        employees: list[Employee] = []

        async with self._client() as client:
            for raw in data.get("Employees") or []:
                is_terminated = raw.get("Status") == "TERMINATED" or bool(raw.get("TerminationDate"))
                if is_terminated and not include_terminated:
                    continue

                detail = await self._fetch_detail(client, raw.get("EmployeeID"))
                employees.append(self._to_employee(raw, detail, is_terminated))

        employees.sort(key=lambda employee: employee["full_name"].lower())
        logger.info("Found %d employees for tenant %s", len(employees), self.tenant_id)

        return PayrollResult(
            success=True,
            employees=employees,
            count=len(employees),
            payroll_available=True,
        )

    async def _fetch_detail(
        self,
        client: httpx.AsyncClient,
        employee_id: Optional[str],
    ) -> Optional[dict[str, Any]]:
        """Employee detail with pay template. Best effort."""
        if not employee_id:
            return None

        path = f"{self.EMPLOYEES_ENDPOINT}/{employee_id}"
        try:
            response = await self._send(client, path)
        except XeroDataFetchError:
            return None

        if not response.is_success:
            logger.warning(
                "Failed to fetch details for employee %s: %d",
                employee_id,
                response.status_code,
            )
            return None

        try:
            details = response.json().get("Employees") or []
        except ValueError:
            return None
        return details[0] if details else None

    @staticmethod
    def _to_employee(
        raw: dict[str, Any],
        detail: Optional[dict[str, Any]],
        is_terminated: bool,
    ) -> Employee:
        annual_salary: Optional[float] = None
        hourly_rate: Optional[float] = None
        employment_type: Optional[str] = None

        if detail:
            if detail.get("EmploymentType"):
                employment_type = str(detail["EmploymentType"]).upper()

            pay_template = detail.get("PayTemplate") or {}
            for line in pay_template.get("EarningsLines") or []:
                if line.get("EarningsRateID") and line.get("AnnualSalary"):
                    annual_salary = float(parse_currency_value(line["AnnualSalary"]))
                elif line.get("RatePerUnit"):
                    hourly_rate = float(parse_currency_value(line["RatePerUnit"]))

        first_name = raw.get("FirstName") or ""
        last_name = raw.get("LastName") or ""
        start_date = parse_xero_date(raw.get("StartDate"))
        termination_date = parse_xero_date(raw.get("TerminationDate"))

        return Employee(
            employee_id=raw.get("EmployeeID") or "",
            first_name=first_name,
            last_name=last_name,
            full_name=f"{first_name} {last_name}".strip(),
            job_title=raw.get("JobTitle") or raw.get("Title") or None,
            start_date=start_date.isoformat() if start_date else None,
            termination_date=termination_date.isoformat() if termination_date else None,
            annual_salary=annual_salary,
            hourly_rate=hourly_rate,
            employment_type=employment_type,
            is_active=not is_terminated,
            email=raw.get("Email") or None,
            from_xero=True,
        )
