"""
BuildMarket Backend: Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [CORS/GZip] → Route

    Rate limiting runs before anything else so rejected requests cost
    nothing. The request ID is set before logging so every access line
    carries it.
"""
