"""HTTP routers for the Playing Cards server."""
