"""Configuration module for the release pipeline.

This module handles pipeline settings and credentials:
- SettingsManager: JSON-based settings persistence
- PipelineSettings: Settings dataclass with environment overrides
- CredentialManager: Access token from the environment or keyring
- Paths: Workspace layout and config directories
"""
