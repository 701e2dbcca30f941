"""
Notification Delivery Module
============================

Bounded Context for scheduling and delivering project notifications.

Responsibilities:
- Per-project delivery scheme (trigger channel matrix, digests)
- Event queue with scheduled delivery times
- Idempotent delivery log keyed by event id
- Cadence-gated digests
- Due-soon and automation-run registrars
"""
