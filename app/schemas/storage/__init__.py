from .storage import StorageLocator, BackendStatus

__all__ = ["StorageLocator", "BackendStatus"]
