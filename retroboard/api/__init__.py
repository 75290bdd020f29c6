"""
The `api` package holds the engine's outward-facing contracts.

Contents
--------
- models
    Pydantic inputs (`CreateCardInput`, `LinkCardsInput`, ...), outputs
    (`CardSummary`, `CardWithRelationships`, `QuotaStatus`, ...), the `Caller`
    identity with its `Capability` set, and event payloads.

- events
    `EventBroadcaster` protocol plus `NullBroadcaster` and
    `LoggingBroadcaster` implementations.
"""
