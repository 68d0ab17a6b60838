"""
Application layer for the records bounded context: query planning and
the generic CRUD controller.
"""
