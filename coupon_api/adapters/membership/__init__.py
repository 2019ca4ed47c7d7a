"""Membership store adapters.

A membership store is a shared set with an atomic add-if-absent operation.
It decides which request for a given requester is the first one.
"""
