"""
Room Relay

Real-time, room-based publish/subscribe relay for text chat.

Subpackages:
- realtime: Sessions, room registry, message router and WebSocket endpoint
- directory: Optional admin directory lookup over HTTP

Modules:
- config: Environment-driven settings
- models: Inbound and outbound envelope models
- errors: Client-facing error taxonomy
- main: FastAPI application factory
"""

__version__ = "1.0.0"
