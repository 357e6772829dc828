"""Infrastructure layer — Kubernetes API access and remote exec transport.

This layer depends on the ``kubernetes`` client library. It may use domain
value types and errors, and translates API failures into them; it must
never import from services, commands, or output.
"""
