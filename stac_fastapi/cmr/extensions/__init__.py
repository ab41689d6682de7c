"""CMR-STAC extensions."""
