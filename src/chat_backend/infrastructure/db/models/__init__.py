"""Import all models so Base.metadata.create_all sees every table."""
from chat_backend.infrastructure.db.models.message import MessageModel
from chat_backend.infrastructure.db.models.user import UserModel

__all__ = [
    "MessageModel",
    "UserModel",
]
