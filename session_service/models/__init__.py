from session_service.models.user_model import User, UserRole
from session_service.models.session_model import UserSession
from session_service.models.activity_log_model import ActivityLog
from session_service.models.cache_entry_model import CacheEntry
