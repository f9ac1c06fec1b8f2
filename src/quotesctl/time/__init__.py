"""Calendar and epoch conversion."""
