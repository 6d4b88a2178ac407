"""
Chat SLA Engine
===============

Service-level metrics for customer support chats, in wall-clock and
business-hours time, with batch recalculation over historical data.
"""

__version__ = "1.0.0"
