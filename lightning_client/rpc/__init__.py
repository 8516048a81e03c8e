"""
JSON-RPC Implementation Module

- demux: splits the response stream into top-level JSON values
- registry: correlates responses to pending calls
- client: the public call facade
"""
