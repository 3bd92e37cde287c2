"""Invocation boundary.

This module routes named commands with positional string arguments
onto the record store and exposes the Python SDK client.
"""
