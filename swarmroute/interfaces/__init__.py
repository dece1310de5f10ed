"""User-facing interfaces for SwarmRoute."""
