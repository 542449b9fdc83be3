from .storage_backend_port import StorageBackendPort, WrittenFile

__all__ = ["StorageBackendPort", "WrittenFile"]
