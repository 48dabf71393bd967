"""Route resolution: OpenAPI path templates compiled into per-method trees.

Built once per specification load and read concurrently afterwards.
"""
