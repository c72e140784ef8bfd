"""
LensCritique Backend: Middleware Package
=========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    The rate limiter rejects before anything else runs. The request ID is
    set before the access log line is written, so both carry the same ID.
"""
