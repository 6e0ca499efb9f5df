"""Self-description catalogue: lifecycle coordination over metadata, blob and graph stores."""
