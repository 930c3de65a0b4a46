"""
Services Package

Background consumers of the real-time message stream:
- event_bus: asyncio pub/sub fan-out from the connection loop
- activity_log: append-only JSON-lines log of message payloads
- copy_trader: mirrors a target wallet's BUY trades through an order executor
"""
