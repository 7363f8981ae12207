"""
Infrastructure Layer

Concrete object stores, record repositories and adapters.
"""
