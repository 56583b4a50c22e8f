"""Terminal frontend runtime: persisted defaults, raw-mode terminal, event loop."""
