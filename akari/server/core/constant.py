"""
Application-wide constants for the HTTP server.
"""

PROJECT_NAME = "AKARI Mystic Club"
API_PREFIX = "/api"
PORTAL_PREFIX = f"{API_PREFIX}/portal"
VERSION = "0.1.0"
