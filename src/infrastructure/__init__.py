"""
Infrastructure layer - external service integrations.

- storage: Object storage (R2/S3) client and the notes document kept
  in the bucket

These wrappers translate between external formats and our domain models.
"""
