"""
Main chat client that orchestrates all components.
"""

from typing import List, Optional

from rich.console import Console

from .chat_engine import ChatEngine
from .config import ChatConfig
from .connection_manager import ConnectionManager
from .response_handler import ResponseHandler
from .ui_manager import UIManager


class ChatClient:
    """Streaming chat client for the generation service."""

    def __init__(self, config: ChatConfig, check_connection: bool = True,
                 connection_manager: Optional[ConnectionManager] = None,
                 console: Optional[Console] = None):
        self.config = config
        console = console or Console()

        # Initialize components
        self.connection_manager = connection_manager or ConnectionManager(config)
        self.response_handler = ResponseHandler(config, console)
        self.ui_manager = UIManager(config, console)
        self.chat_engine = ChatEngine(config, self.connection_manager, self.response_handler)

        if check_connection and not self.connection_manager.test_connection():
            raise ConnectionError("Failed to connect to generation server")

    def chat(self, message: str) -> str:
        """Send a chat message and get response."""
        return self.chat_engine.chat(message)

    def clear_history(self) -> None:
        """Clear conversation history and the server session."""
        self.chat_engine.new_conversation()
        self.ui_manager.show_success("Conversation cleared")

    def show_history(self) -> None:
        """Show conversation history."""
        self.ui_manager.show_history(self.chat_engine.history())

    def get_available_models(self) -> List[str]:
        """Get available models from the server."""
        return self.connection_manager.get_available_models()

    def set_model(self, model: str):
        """Set the model to use for the following turns."""
        self.config.model = model
