from sportsconnect.models.message import Message
from sportsconnect.models.user import Post, User

__all__ = ["Message", "Post", "User"]
