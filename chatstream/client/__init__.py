"""
Terminal chat client built from focused components.
"""

from .chat_client import ChatClient
from .config import ChatConfig
from .cli import main

__all__ = ['ChatClient', 'ChatConfig', 'main']
