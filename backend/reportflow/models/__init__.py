from .locations import City, Subdistrict, Branch
from .auth import User, SessionToken
from .reports import Report, ReportComment, REPORT_STATUSES
from .security import SecurityEvent

__all__ = [
    'City', 'Subdistrict', 'Branch',
    'User', 'SessionToken',
    'Report', 'ReportComment', 'REPORT_STATUSES',
    'SecurityEvent',
]
