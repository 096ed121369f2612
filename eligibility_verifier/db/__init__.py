"""
Database module for Insurance Eligibility Verification.

Exports connection utilities and insurance record repositories.
"""

from eligibility_verifier.db.connection import (
    check_db_connection,
    close_db_connection,
    create_engine,
    create_session_maker,
    create_tables,
    get_engine,
    get_session_maker,
)
from eligibility_verifier.db.repository import (
    InMemoryInsuranceRepository,
    InsuranceRepository,
    SqlAlchemyInsuranceRepository,
)

__all__ = [
    # Connection
    "check_db_connection",
    "close_db_connection",
    "create_engine",
    "create_session_maker",
    "create_tables",
    "get_engine",
    "get_session_maker",
    # Repositories
    "InMemoryInsuranceRepository",
    "InsuranceRepository",
    "SqlAlchemyInsuranceRepository",
]
