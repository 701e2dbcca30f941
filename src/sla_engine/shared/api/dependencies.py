"""
Shared API Dependencies
=======================

FastAPI dependencies resolving the services held in application state.
"""

from fastapi import Request

from sla_engine.container import EngineContainer
from sla_engine.sla.application import SLAPolicyService, SLAEvaluationService
from sla_engine.notifications.application import NotificationService


def get_container(request: Request) -> EngineContainer:
    """The engine container built during application startup."""
    return request.app.state.container


def get_policy_service(request: Request) -> SLAPolicyService:
    return get_container(request).policies


def get_evaluation_service(request: Request) -> SLAEvaluationService:
    return get_container(request).evaluator


def get_notification_service(request: Request) -> NotificationService:
    return get_container(request).notifications
