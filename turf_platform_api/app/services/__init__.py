"""
Service layer.

Each service encapsulates business logic for one concern and receives
the record store (and, where it emits events, the event bus) at
construction time.  API handlers only translate between HTTP and these
services.
"""
