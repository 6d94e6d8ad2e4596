"""DocGate application package."""
