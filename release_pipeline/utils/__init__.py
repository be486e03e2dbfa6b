"""Utility module for the release pipeline.

This module provides cross-cutting utilities:
- Logging: Configured logging with secret redaction
- Validators: Input validation for repositories, branches, versions and paths
"""
