"""Survey flow services: resolution, classification, collection and collaborators."""
