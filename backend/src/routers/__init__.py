from .agent_ws import router as agent_ws_router
from .chat import router as chat_router

__all__ = ["agent_ws_router", "chat_router"]
