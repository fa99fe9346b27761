"""API routers: business endpoints, health probes and metrics exposition."""
