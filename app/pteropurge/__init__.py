"""pteropurge - Bulk server cleanup for Pterodactyl panels."""

__version__ = "0.1.0"
