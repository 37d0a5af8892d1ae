from .node_collector import NodeCollector

__all__ = ["NodeCollector"]
