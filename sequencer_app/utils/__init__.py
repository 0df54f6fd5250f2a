"""
Utility functions module.

Common helpers shared across the engine.

Time Semantics:
- Step timing always uses the event loop's monotonic clock
- Wall-clock UTC time is only used for document timestamps and logging
- Durations are expressed in milliseconds throughout the public API
"""
