"""Feature modules and shared service foundations."""
