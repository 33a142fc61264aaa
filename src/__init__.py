"""
R2 Notes - a browser file manager for an object-storage bucket.

This package contains the complete application:
- core: Framework-agnostic listing, search and caching logic
- infrastructure: Object storage client and the notes document
- api: FastAPI routes, dependencies and the browser page
- config: Application configuration
"""

__version__ = "0.1.0"
