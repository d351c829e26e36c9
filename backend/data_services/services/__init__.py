"""
Service layer: generic CRUD handlers and permission checks.
"""
