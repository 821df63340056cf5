"""Resource-aware parallel test scheduler."""
