"""
Records bounded context: framework-free types, errors and ports.
"""
