"""
Runtime package: the engine facade that wires the core components together.
"""
