"""GreenPlace: carbon-aware placement for Kubernetes-managed database nodes."""

__version__ = "0.1.0"
