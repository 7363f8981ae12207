"""
Configuration Module

Environment-driven settings for the transfer service, Redis and Celery.
"""

from .transfer_config import TransferConfig

__all__ = ["TransferConfig"]
