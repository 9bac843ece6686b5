"""Socket.IO server, broadcast hub and client event handlers."""
