"""Core purge logic: configuration, filtering and orchestration."""
