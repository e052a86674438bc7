"""
Sales Report API Routes

Endpoints for sales reports, summaries, forecasts and the dashboard
over an uploaded order snapshot.
"""

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query

from api.schemas.responses import AISummary, DashboardSummary, Forecast, SalesReport
from core.cache import session_store
from insights.report_generator import SalesReportGenerator


router = APIRouter()


def get_generator(session_id: str) -> SalesReportGenerator:
    """Report generator over a session's snapshot; 404 when the session is gone."""
    if session_store.get(session_id) is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return SalesReportGenerator(order_source=lambda: session_store.get_orders(session_id) or [])


def build_filters(
    start_date: Optional[str],
    end_date: Optional[str],
    product_id: Optional[str],
    customer_id: Optional[str],
    status: Optional[str],
    min_amount: Optional[float],
) -> dict[str, Any]:
    filters = {
        "startDate": start_date,
        "endDate": end_date,
        "productId": product_id,
        "customerId": customer_id,
        "status": status,
        "minAmount": min_amount,
    }
    return {k: v for k, v in filters.items() if v is not None}


@router.get("/reports/{session_id}", response_model=SalesReport)
async def get_report(
    session_id: str,
    date_range: str = Query(default="month", alias="dateRange", description="Date range key"),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    product_id: Optional[str] = Query(default=None, alias="productId"),
    customer_id: Optional[str] = Query(default=None, alias="customerId"),
    status: Optional[str] = Query(default=None),
    min_amount: Optional[float] = Query(default=None, alias="minAmount"),
    include_summary: bool = Query(default=False, description="Attach the AI summary"),
    include_forecast: bool = Query(default=False, description="Attach a sales forecast"),
) -> SalesReport:
    """
    Generate a sales report for a date range.

    Invalid ranges still return 200 with an empty report whose ``error``
    field explains the problem.
    """
    generator = get_generator(session_id)
    filters = build_filters(start_date, end_date, product_id, customer_id, status, min_amount)
    return await generator.generate_sales_report(
        date_range,
        filters,
        include_summary=include_summary,
        include_forecast=include_forecast,
    )


@router.get("/reports/{session_id}/summary", response_model=AISummary)
async def get_summary(
    session_id: str,
    date_range: str = Query(default="month", alias="dateRange"),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
) -> AISummary:
    """Narrative summary, insights and recommendations for a date range."""
    generator = get_generator(session_id)
    filters = build_filters(start_date, end_date, None, None, None, None)
    report = await generator.generate_sales_report(date_range, filters)
    if report.error:
        raise HTTPException(status_code=400, detail=report.error)
    return generator.generate_ai_summary(report)


@router.get("/reports/{session_id}/forecast", response_model=Forecast)
async def get_forecast(
    session_id: str,
    period: str = Query(default="week", pattern="^(week|month)$", description="Forecast horizon"),
) -> Forecast:
    """Sales and product demand forecast from the full snapshot."""
    generator = get_generator(session_id)
    return generator.generate_forecast(period=period)


@router.get("/reports/{session_id}/dashboard", response_model=DashboardSummary)
async def get_dashboard(session_id: str) -> DashboardSummary:
    """Headline numbers for the dashboard."""
    return get_generator(session_id).dashboard_summary()
