"""
finmodel-dsl core.

Canonical, adapter-free implementation of the model runtime: everything
needed to validate a model, plan it and run it against a primitive
registry.

The core is designed to be:
    - deterministic
    - testable in isolation
    - free of network, storage or UI dependencies
    - driven by explicit contracts

Main components:
    - config     → configuration resolution (merge, hashing, settings)
    - model      → frozen model types, params tagged union, document loader
    - validation → model and run-input validators
    - pipeline   → primitive contract, registry and per-run context
    - engine     → planning (DAG) and timed execution
    - outputs    → output definition checks and result formatting

Principles:
    - No silent decisions: every behavior is explicit and tested
    - Strict separation between layers
    - Per-run state is isolated and traceable through the event log

Explicit limits:
    - Does not define concrete primitives (see `finmodel_dsl.primitives`)
    - Does not talk to data providers (see `finmodel_dsl.data`)
"""
