"""Domain layer: value objects, entities, enums and exceptions."""
