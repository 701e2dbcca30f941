"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded
contexts (SLA tracking and notification delivery).

Architecture Pattern: Modular Monolith
- Each module (sla, notifications) is a bounded context
- Shared kernel contains only generic infrastructure (clock, logging,
  project registry, scheduler, API plumbing)

DO NOT add business logic from SLA or Notifications to shared kernel.
"""
