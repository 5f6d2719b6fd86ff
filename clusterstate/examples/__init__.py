"""
Reference applications built on the engine.
"""
