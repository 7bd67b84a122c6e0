from src.infrastructure.repositories.checkins import CheckInRepository
from src.infrastructure.repositories.session_store import SessionStore
from src.infrastructure.repositories.users import UserRepository

__all__ = ["CheckInRepository", "SessionStore", "UserRepository"]
