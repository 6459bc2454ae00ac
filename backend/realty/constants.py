"""
Realty Global Constants

Centralized location for system-wide constants used across the application.
"""

# Application Constants
APP_NAME = "Realty Listings API"
APP_VERSION = "1.0.0"

# Pagination
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
