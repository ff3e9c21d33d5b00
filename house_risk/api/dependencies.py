"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from house_risk.services.advance_service import AdvanceService
from house_risk.services.hsi_engine import HSIEngine
from house_risk.services.risk_history import RiskHistoryService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_hsi_engine(request: Request) -> HSIEngine:
    """Provide the app's HSI engine"""
    return request.app.state.hsi_engine


def get_advance_service(request: Request) -> AdvanceService:
    """Provide the app's advance allowance service"""
    return request.app.state.advance_service


def get_history_service(request: Request) -> RiskHistoryService:
    """Provide the app's risk history service"""
    return request.app.state.history_service
