"""
Notification Interfaces Layer
=============================

FastAPI route handlers for notification delivery.
"""

from sla_engine.notifications.interfaces.controllers import notifications_router

__all__ = ["notifications_router"]
