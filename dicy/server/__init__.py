"""HTTP/WebSocket service for human vs agent matches."""
