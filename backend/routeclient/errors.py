from __future__ import annotations


class RpcError(Exception):
    """A route guide call failed before delivering its full response."""
