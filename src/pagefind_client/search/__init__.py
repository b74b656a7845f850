"""Query encoding, response parsing and result post-processing."""
