"""
Shipped compilation backends.

A backend is any importable module exposing a factory (create_engine, init or
initialize) that returns an object with some subset of the call shapes probed
by collabtex.contexts.rendering.capabilities.
"""
