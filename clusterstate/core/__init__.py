"""
Core package: the blueprint data model and the components the engine is
composed from (event bus, projector, state manager, validation).
"""
