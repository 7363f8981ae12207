"""
Celery Tasks

Task modules are imported by name from celery_app so that importing this
package does not require a configured Celery instance.
"""
