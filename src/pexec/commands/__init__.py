"""Click plumbing shared by the pexec command.

``_base`` holds the command class with ``--examples`` support and
``_context`` the per-invocation AppContext.
"""
