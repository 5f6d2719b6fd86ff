"""
Shared type aliases and records used across the core and runtime packages.
"""
