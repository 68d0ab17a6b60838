"""
Shared error handling package.

Centralizes failure classification and error-to-HTTP mapping so that
every failure, whatever its origin, reaches the client in one shape.
"""
