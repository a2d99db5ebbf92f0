"""Transmute-AI.

This package turns source material into a deployed repository by running it
through a fixed five-stage transformation pipeline whose heavy lifting is done
by remote capability servers.

High-level architecture
-----------------------

- **Capabilities**: named remote servers (code analyzer, artifact generator,
  UI generator, repository host, notifier, text generation) reached over
  JSON-RPC 2.0, each through a client with timeouts, retries and a connection
  state machine.
- **Pipeline**: a LangGraph state graph that runs analyze, plan, generate,
  validate and deploy in order, persisting a stage log entry per transition.

Core subpackages
----------------

- ``transmute_ai.capability_client``:

  - ``CapabilityClient`` and ``CapabilityRegistry``.
  - HTTP and stdio JSON-RPC transports.
  - Typed adapters for each capability family.

- ``transmute_ai.pipeline``: ``TransformationPipeline``, the default stages and
  the artifact ``QualityValidator``.
- ``transmute_ai.events``: ``ProgressEventBus`` with bounded per-subscriber
  queues.
- ``transmute_ai.hooks``: ``HookDispatcher`` reacting to lifecycle events.
- ``transmute_ai.repos``: job and stage log repositories (in-memory and
  SQLAlchemy).
- ``transmute_ai.server``: the FastAPI application.

Typical workflow
----------------

1. ``POST /api/v1/jobs/{id}/start`` with the source material.
2. Follow ``GET /api/v1/jobs/{id}/events`` until the terminal event.
3. Read ``GET /api/v1/jobs/{id}/logs`` for the per-stage audit trail.

A job that completed or failed is never re-run.
"""
