"""
Budget Buddy - Backend Core

Dashboard aggregation and savings goal management for a personal
budgeting application.

DESIGN PRINCIPLES:
1. Every query and write is scoped to the calling user
2. Multi-table writes commit together or not at all
3. Money is exact (integer cents), never float
4. Every destructive step is auditable
5. Transport, authentication and migrations stay outside the core
"""

__version__ = "1.0.0"
__author__ = "Budget Buddy Team"
