"""
UI management for displaying messages and status.
"""

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models import MessageSnapshot
from .config import ChatConfig

HISTORY_PREVIEW = 100


class UIManager:
    """Manages user interface elements."""

    def __init__(self, config: ChatConfig, console: Optional[Console] = None):
        self.config = config
        self.console = console or Console()

    def show_welcome(self, model: str):
        """Show welcome message with rich formatting."""
        welcome_text = Text()
        welcome_text.append("💬 ChatStream", style="bold blue")
        welcome_text.append("\n\n", style="")
        welcome_text.append("Configuration:\n", style="bold")
        welcome_text.append(f"• Server: {self.config.base_url}\n", style="")
        welcome_text.append(f"• Model: {model}\n", style="")
        welcome_text.append(f"• Math: {self.config.math_display}\n", style="")
        if self.config.debug:
            welcome_text.append(f"• Debug log: {self.config.log_file}\n", style="yellow")

        welcome_text.append("\nCommands: /help, /clear, /new, /history, /models, /quit\n", style="dim")
        welcome_text.append("Press Ctrl+C while a reply streams to stop it.", style="italic")

        self.console.print(Panel(welcome_text, title=":rocket: Welcome", border_style="blue"))

    def show_help(self):
        """Show help message."""
        help_table = Table(title="Available Commands")
        help_table.add_column("Command", style="cyan", no_wrap=True)
        help_table.add_column("Description", style="white")
        help_table.add_row("/help", "Show this help message")
        help_table.add_row("/clear", "Clear conversation history and start a new session")
        help_table.add_row("/new", "Same as /clear")
        help_table.add_row("/history", "Show conversation history")
        help_table.add_row("/models", "List models offered by the server")
        help_table.add_row("/model NAME", "Switch the model used for the next turn")
        help_table.add_row("/quit", "Exit the chat")
        self.console.print(help_table)

    def show_history(self, snapshots: List[MessageSnapshot]):
        """Show the conversation as a table, truncating long messages."""
        if not snapshots:
            self.console.print("[dim]📝 No conversation history[/dim]")
            return

        table = Table(title="📝 Conversation History", show_header=True, header_style="bold magenta")
        table.add_column("Turn", style="cyan", no_wrap=True, width=4)
        table.add_column("Role", style="bold", width=10)
        table.add_column("Content", style="white", overflow="fold")

        for i, snapshot in enumerate(snapshots, 1):
            preview = snapshot.content
            if len(preview) > HISTORY_PREVIEW:
                preview = preview[:HISTORY_PREVIEW - 3] + "..."
            # Message text is never parsed as console markup
            content = Text(preview)
            if not snapshot.finalized:
                content.append(" (incomplete)", style="dim")
            table.add_row(str(i), snapshot.role.value.title(), content)

        self.console.print(table)

    def show_models(self, models: List[str], current: str):
        if not models:
            self.show_error("No models reported by the server")
            return
        for name in models:
            marker = "[green]●[/green]" if name == current else " "
            self.console.print(f"{marker} {escape(name)}")

    def show_error(self, message: str):
        """Show error message."""
        self.console.print(f"[red]❌ {escape(message)}[/red]")

    def show_success(self, message: str):
        """Show success message."""
        self.console.print(f"[green]✓ {escape(message)}[/green]")

    def show_goodbye(self):
        self.console.print("[yellow]👋 Goodbye![/yellow]")
