from models.users import User
from models.refresh_tokens import RefreshToken
from models.audit_logs import AuditLog

__all__ = ["User", "RefreshToken", "AuditLog"]
