"""
Utility functions for Lambda handler operations.

This package contains reusable service functions for S3 snapshot access,
email templates and SES notifications.
"""

__all__ = ['email', 's3', 'snapshot_store', 'templates']
