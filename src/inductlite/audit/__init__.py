from .service import log_audit_event, purge_old_audit_logs

__all__ = ["log_audit_event", "purge_old_audit_logs"]
