"""
Expense Tracker - Source Package

Salary-cycle expense accounting with threshold budget alerts.

DESIGN PRINCIPLES:
1. Every expense belongs to exactly one salary cycle, forever
2. A cycle's salary is frozen when the cycle is opened
3. Per-user writes are serialized, users never block each other
4. An alert level fires at most once per cycle
5. Notification failures never fail the request that caused them
6. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
