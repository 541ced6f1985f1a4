"""Domain core: errors, models, services and adapters."""
