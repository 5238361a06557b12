"""HTTP routers for the Whereabouts service."""
