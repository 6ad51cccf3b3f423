# Middleware package init
"""
CatTrack Backend: Middleware Package
=====================================

Middleware Chain:
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit first: abusive clients are rejected before anything else
    2. Request ID: correlation id for logs and the error envelope
    3. Logging: one access line per request with status and duration
"""
