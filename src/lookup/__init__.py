"""Remote lookup clients."""
