"""
SLA Tracking Module
===================

Bounded Context for service level tracking of project tasks.

Responsibilities:
- Store SLA policies per project (seeded from YAML defaults)
- Evaluate task snapshots against each active policy's target
- Accrue paused time across evaluations via pause and resume rules
- Record each breach once and emit an ``sla_breach`` notification event
- Config hot-reload via watchdog
"""
