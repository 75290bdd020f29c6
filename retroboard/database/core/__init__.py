"""
Core Package — engine rules and service operations
==================================================

Contents
--------
- relationship_validator  pure link rules (no storage access)
- counter_aggregator      reaction-count propagation and explicit reconciliation
- quota_enforcer          per-user card and reaction limits
- cascade_coordinator     ordered board and card deletes
- funcs                   `@transactional` card and reaction operations
"""
