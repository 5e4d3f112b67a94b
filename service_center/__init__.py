"""Service-center backend: customers, service orders and repair jobs."""
