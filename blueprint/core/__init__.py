"""Core install/remove engine for Blueprint services."""
