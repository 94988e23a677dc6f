"""Collab configuration.

Loads CollabConfig from DONEO_* environment variables.
"""

from patterns.domain_config import CollabConfig

# Default configuration instance
config = CollabConfig.from_env()
