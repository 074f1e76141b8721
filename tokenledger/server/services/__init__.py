"""
Request-level services of the server.

- auth: bearer token parsing and API token authentication
- pricing: the process-wide pricing resolver
- deps: FastAPI dependency aliases
"""
