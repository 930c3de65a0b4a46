"""
Core Package

Contains the shared building blocks of the application:
- Config: Pydantic Settings loaded from the environment / .env file
- Logging: Centralized logger setup
- Schemas: Pydantic models for the real-time data wire format (subscriptions, messages, status)
"""
