"""pexec — run one command in every pod of a Kubernetes workload."""

__version__ = "0.3.0"
