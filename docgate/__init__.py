"""DocGate: rate-limited document submission client."""
