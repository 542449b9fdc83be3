from .retention_store_port import CompanyRetention, ExpiredDocument, RetentionStorePort

__all__ = ["CompanyRetention", "ExpiredDocument", "RetentionStorePort"]
