"""Service layer — the resolve, list, dispatch, and summarize pipeline.

Services may import from domain and infrastructure layers.
They must never import from commands or output.
"""
