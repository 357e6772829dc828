"""Domain layer — value types, label handling, and the error taxonomy.

Pure Python plus pydantic. Must never import from infrastructure,
services, commands, or output.
"""
