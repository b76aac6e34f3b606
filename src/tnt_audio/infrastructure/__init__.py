"""Infrastructure adapters: engine subprocess, temp artifacts, logging."""
