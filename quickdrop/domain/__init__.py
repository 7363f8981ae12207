"""
Domain Layer

Object lifecycle state machine, storage contracts, errors and events.
"""
