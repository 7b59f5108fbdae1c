"""Gateway tier: serves the landing page and forwards everything else to the API service."""
