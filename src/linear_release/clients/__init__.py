"""Clients for the external services a release run talks to.

Each module defines a Protocol, an httpx implementation against the real
API, and an in-memory mock for tests and dry runs.
"""
