"""kubeterm - per-user terminal sessions on Gardener landscapes."""

__version__ = "0.1.0"
