"""
SLA Engine
==========

SLA tracking and notification delivery engine for project task management.

Bounded contexts:
- sla: SLA policies, evaluation and breach bookkeeping
- notifications: notification scheme, event queue, digests and automation runs
"""

__version__ = "1.0.0"
