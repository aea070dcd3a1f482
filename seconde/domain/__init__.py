"""Domain layer: entities and abstract interfaces."""
