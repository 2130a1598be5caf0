"""storyworker -- offline-first request interception for the StoryMap client.

This package sits between an application and the network and decides, per
request, whether to answer from a local versioned cache, from the network,
or from both.  It also manages the cache lifecycle across deployments,
displays pushed notifications, and replays locally queued writes once
connectivity returns.

Typical workflow::

    storyworker activate                      # populate shell, drop stale stores
    storyworker fetch https://story-api.dicoding.dev/v1/stories
    storyworker sync                          # replay queued favorites

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration management.
    engine: Network-first / cache-first interception engine.
    lifecycle: Versioned cache install / activate handling.
    notifications: Push payload decoding and notification interaction.
    sync: Deferred replay of queued records.
    worker: Event dispatcher wiring the components together.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
