from .asurascans import AsuraScansSource

__all__ = ["AsuraScansSource"]
