"""Import all models so Base.metadata sees every table."""
from teamchat.infrastructure.db.models.message import MessageModel
from teamchat.infrastructure.db.models.user import UserModel

__all__ = [
    "MessageModel",
    "UserModel",
]
