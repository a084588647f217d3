"""
FastAPI dependencies
"""

from fastapi import Depends
from sqlmodel import Session

from shopsync.core.config import Settings, get_settings
from shopsync.core.database import get_session
from shopsync.services.reconciliation import ReconciliationService


def get_reconciliation_service(
    session: Session = Depends(get_session)
) -> ReconciliationService:
    """Reconciliation engine bound to the request session"""
    return ReconciliationService(session)


def get_app_settings() -> Settings:
    """Settings as a dependency so tests can override them"""
    return get_settings()
