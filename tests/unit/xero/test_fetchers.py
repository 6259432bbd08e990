# tests/unit/xero/test_fetchers.py
"""
Tests for the Xero report and payroll fetchers.
"""
from datetime import date
from typing import Any, Dict

import httpx
import pytest

from app.integrations.xero.exceptions import XeroDataFetchError
from app.integrations.xero.fetchers import PayrollFetcher, ProfitLossFetcher


def transport_returning(status_code: int, json: Any = None, text: str = "") -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if json is not None:
            return httpx.Response(status_code, json=json)
        return httpx.Response(status_code, text=text)

    return httpx.MockTransport(handler)


class TestProfitLossFetcher:
    """Test suite for ProfitLossFetcher."""

    @pytest.mark.asyncio
    async def test_fetch_sends_monthly_report_request(
        self,
        pl_response_data: Dict[str, Any],
    ) -> None:
        """One GET with date range, periods, MONTH timeframe and tenant header."""
        # Arrange
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=pl_response_data)

        fetcher = ProfitLossFetcher(
            "access-token",
            "tenant-123",
            transport=httpx.MockTransport(handler),
        )

        # Act
        report = await fetcher.fetch(date(2024, 1, 1), date(2024, 2, 29), periods=2)

        # Assert
        assert report == pl_response_data["Reports"][0]
        assert len(requests) == 1
        request = requests[0]
        assert request.method == "GET"
        assert request.url.path == "/api.xro/2.0/Reports/ProfitAndLoss"
        assert dict(request.url.params) == {
            "fromDate": "2024-01-01",
            "toDate": "2024-02-29",
            "periods": "2",
            "timeframe": "MONTH",
        }
        assert request.headers["Authorization"] == "Bearer access-token"
        assert request.headers["xero-tenant-id"] == "tenant-123"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_fetch_recent_uses_sync_window(
        self,
        pl_response_data: Dict[str, Any],
    ) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=pl_response_data)

        fetcher = ProfitLossFetcher("t", "tenant", transport=httpx.MockTransport(handler))

        await fetcher.fetch_recent(24, today=date(2026, 3, 15))

        params = requests[0].url.params
        assert params["fromDate"] == "2024-03-15"
        assert params["toDate"] == "2026-03-15"
        assert params["periods"] == "24"

    @pytest.mark.asyncio
    async def test_non_2xx_raises_with_status_and_body(self) -> None:
        """Errors are not retried and carry the upstream status."""
        # Arrange
        fetcher = ProfitLossFetcher(
            "t",
            "tenant",
            transport=transport_returning(401, text='{"Title":"Unauthorized"}'),
        )

        # Act / Assert
        with pytest.raises(XeroDataFetchError) as exc_info:
            await fetcher.fetch(date(2024, 1, 1), date(2024, 1, 31))

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "API error: 401"
        assert "Unauthorized" in exc_info.value.body

    @pytest.mark.asyncio
    async def test_missing_reports_returns_none(self) -> None:
        fetcher = ProfitLossFetcher(
            "t",
            "tenant",
            transport=transport_returning(200, json={"Reports": []}),
        )

        assert await fetcher.fetch(date(2024, 1, 1), date(2024, 1, 31)) is None

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        fetcher = ProfitLossFetcher("t", "tenant", transport=httpx.MockTransport(handler))

        with pytest.raises(XeroDataFetchError) as exc_info:
            await fetcher.fetch(date(2024, 1, 1), date(2024, 1, 31))

        assert exc_info.value.status_code is None


class TestPayrollFetcher:
    """Test suite for PayrollFetcher.fetch_employees."""

    @pytest.mark.asyncio
    async def test_unauthorized_is_soft_success_needing_reconnect(self) -> None:
        fetcher = PayrollFetcher("t", "tenant", transport=transport_returning(401, text="nope"))

        result = await fetcher.fetch_employees()

        assert result["success"] is True
        assert result["employees"] == []
        assert result["payroll_available"] is False
        assert result["needs_reconnect"] is True

    @pytest.mark.parametrize("status_code", [403, 404])
    @pytest.mark.asyncio
    async def test_payroll_not_enabled_is_soft_success(self, status_code: int) -> None:
        fetcher = PayrollFetcher("t", "tenant", transport=transport_returning(status_code))

        result = await fetcher.fetch_employees()

        assert result["success"] is True
        assert result["payroll_available"] is False
        assert "needs_reconnect" not in result

    @pytest.mark.asyncio
    async def test_other_errors_propagate_with_body(self) -> None:
        fetcher = PayrollFetcher(
            "t",
            "tenant",
            transport=transport_returning(500, text="payroll exploded"),
        )

        with pytest.raises(XeroDataFetchError) as exc_info:
            await fetcher.fetch_employees()

        assert exc_info.value.status_code == 500
        assert exc_info.value.body == "payroll exploded"

    @pytest.mark.asyncio
    async def test_employees_sorted_with_details(
        self,
        payroll_employees_data: Dict[str, Any],
    ) -> None:
        """Terminated staff are skipped, details are best effort, names sorted."""
        # Arrange
        details = {
            "emp-1": {
                "Employees": [
                    {
                        "EmploymentType": "fulltime",
                        "PayTemplate": {
                            "EarningsLines": [
                                {"EarningsRateID": "rate-1", "AnnualSalary": "85000"}
                            ]
                        },
                    }
                ]
            },
        }

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if path == "/payroll.xro/1.0/Employees":
                return httpx.Response(200, json=payroll_employees_data)
            employee_id = path.rsplit("/", 1)[-1]
            if employee_id in details:
                return httpx.Response(200, json=details[employee_id])
            return httpx.Response(500, text="detail failed")

        fetcher = PayrollFetcher("t", "tenant", transport=httpx.MockTransport(handler))

        # Act
        result = await fetcher.fetch_employees()

        # Assert
        assert result["payroll_available"] is True
        assert result["count"] == 2
        adam, zoe = result["employees"]
        assert adam["full_name"] == "Adam Brown"
        assert adam["annual_salary"] == 85000.0
        assert adam["employment_type"] == "FULLTIME"
        assert adam["job_title"] == "Technician"
        assert zoe["full_name"] == "Zoe Walker"
        assert zoe["annual_salary"] is None
        assert zoe["start_date"] == "2020-01-01"
        assert zoe["is_active"] is True

    @pytest.mark.asyncio
    async def test_include_terminated(
        self,
        payroll_employees_data: Dict[str, Any],
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/payroll.xro/1.0/Employees":
                return httpx.Response(200, json=payroll_employees_data)
            return httpx.Response(404)

        fetcher = PayrollFetcher("t", "tenant", transport=httpx.MockTransport(handler))

        result = await fetcher.fetch_employees(include_terminated=True)

        terminated = [e for e in result["employees"] if not e["is_active"]]
        assert [e["full_name"] for e in terminated] == ["Terry Former"]
        assert terminated[0]["termination_date"] == "2024-01-01"
