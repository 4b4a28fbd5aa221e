"""
CLINIC COMMISSION ENGINE
Staff and referral commission decisions for clinic billing
"""

from .models import BillingEvent, CommissionContext, CommissionDecision, CommissionProfile, CommissionType
from .processor import CommissionProcessor
from .reports import CommissionReports
from .sources import CommissionDataSource, DataAccessError, InMemoryDataSource

__all__ = [
    'CommissionProcessor',
    'CommissionReports',
    'CommissionProfile',
    'CommissionType',
    'CommissionContext',
    'CommissionDecision',
    'BillingEvent',
    'CommissionDataSource',
    'InMemoryDataSource',
    'DataAccessError',
]
