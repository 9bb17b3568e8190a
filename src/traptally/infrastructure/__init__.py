"""Infrastructure layer: persistence, Spotify integration, logging."""
