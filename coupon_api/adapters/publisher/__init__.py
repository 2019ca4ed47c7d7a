"""Grant publisher adapters.

Publishers accept grant events for asynchronous, durable handling. The call
returns once the event is enqueued; persistence happens downstream.
"""
