"""
Models Package
SQLAlchemy ORM models for the application.
"""

from app.models.business import Business
from app.models.xero_connection import XeroConnection
from app.models.xero_pl_line import AccountType, XeroPLLine

__all__ = [
    "Business",
    "XeroConnection",
    "XeroPLLine",
    "AccountType",
]
