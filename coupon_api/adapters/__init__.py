"""Adapters for the shared stores and the grant channel.

The admission engine depends only on the abstract bases so the in-memory
implementations used in development and tests can be swapped for Redis and
Kafka through configuration.
"""
