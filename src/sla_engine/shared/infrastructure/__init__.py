"""
Infrastructure Layer
=====================

Low-level technical concerns:
- Logging setup
- Per-project state registries
- Time source
"""
