"""HTTP routers for the Durak game server."""
