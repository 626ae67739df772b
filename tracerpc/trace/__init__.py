"""
Trace synthesis and readiness engine.

Submodules:
    types      - value types (SchemaProfile, TraceRow, Existence, ReadinessDecision)
    normalize  - store value → wire form conversion
    schema     - one-time indexer schema probe
    queries    - precompiled trace and fallback queries
    upstream   - upstream node existence / head checks
    readiness  - indexer lag detection
    formatter  - TraceRow → Parity-style trace object
    engine     - trace_block / trace_transaction decision tree

Import submodules directly; this package stays import-light because the
config loader depends on ``types``.
"""
