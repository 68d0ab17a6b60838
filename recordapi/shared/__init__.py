"""
Shared cross-cutting concerns: logging, errors, rate limiting.
"""
