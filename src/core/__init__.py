"""
Core business logic for the file manager.

This module is framework-agnostic - it doesn't import FastAPI, boto3,
or any infrastructure concerns. The listing and search rules can be
tested in isolation.
"""
