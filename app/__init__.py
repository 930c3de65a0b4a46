"""
Application Package

Contains the process runner that wires configuration, logging, the real-time
data client and the background services together.
"""
