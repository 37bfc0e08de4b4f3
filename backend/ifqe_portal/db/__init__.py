"""
Database module for the IFQE portal

Contains the indicator catalog seed.
"""
from ifqe_portal.db.indicator_seed import seed_indicator_catalog, INDICATOR_SEED

__all__ = ["seed_indicator_catalog", "INDICATOR_SEED"]
