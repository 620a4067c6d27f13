# Import all models here
from app.models.user import User
from app.models.chat import ChatMessage
