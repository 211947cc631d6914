"""
CLI interface for the chat client.

This module provides the command-line interface, a REPL (Read-Eval-Print
Loop) that sends each line to the generation service and renders the reply
as it streams.

Learning Points:
- Argument Parsing: argparse values override the YAML config only when given
- Enhanced Input: prompt_toolkit for history and styling
- Command Pattern: Slash commands for special operations
- Two kinds of Ctrl+C: during a reply it stops the reply, at the prompt it
  exits the client
"""

import argparse
import logging
import sys

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.styles import Style

from .. import __version__
from .chat_client import ChatClient
from .config import ChatConfig

logger = logging.getLogger(__name__)

QUIT_COMMANDS = ('quit', 'exit', 'q')


def create_prompt_session() -> PromptSession:
    """Create a prompt session with in-memory history (↑/↓) and a styled prompt."""
    style = Style.from_dict({
        'prompt': 'bold cyan',
    })
    return PromptSession(
        history=InMemoryHistory(),
        style=style,
        message="You: "
    )


def setup_logging(config: ChatConfig) -> None:
    """Send debug logs to ``config.log_file``; otherwise keep the terminal quiet."""
    if config.debug:
        logging.basicConfig(
            filename=config.log_file,
            level=logging.DEBUG,
            format='%(asctime)s - %(levelname)s - %(message)s',
            filemode='w'
        )
        # Connection pool chatter drowns out the stream events
        logging.getLogger('urllib3').setLevel(logging.INFO)
    else:
        # Failures already reach the user as the failure notice
        logging.getLogger("chatstream").addHandler(logging.NullHandler())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='chatstream',
        description="Streaming terminal chat client",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        '--config',
        help='Path to a YAML configuration file'
    )
    parser.add_argument(
        '--base-url',
        help='Generation server base URL (default: http://localhost:8080)'
    )
    parser.add_argument(
        '--model',
        help='Model name sent with each request (default: qwen)'
    )
    parser.add_argument(
        '--math',
        choices=['latex', 'unicode'],
        help='Show math as LaTeX source or convert it to Unicode'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Write debug logs of requests and stream events'
    )
    parser.add_argument(
        '--log-file',
        help='Debug log location (default: chatstream_debug.log)'
    )
    parser.add_argument(
        '--no-check',
        action='store_true',
        help='Skip the /health check on startup'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    return parser


def handle_command(client: ChatClient, user_input: str) -> bool:
    """Run one slash command; returns False when the REPL should stop."""
    cmd, _, argument = user_input[1:].partition(' ')
    cmd = cmd.lower()
    argument = argument.strip()

    if cmd in QUIT_COMMANDS:
        client.ui_manager.show_goodbye()
        return False
    if cmd == 'help':
        client.ui_manager.show_help()
    elif cmd in ('clear', 'new'):
        client.clear_history()
    elif cmd == 'history':
        client.show_history()
    elif cmd == 'models':
        client.ui_manager.show_models(client.get_available_models(), client.config.model)
    elif cmd == 'model':
        if not argument:
            client.ui_manager.show_error("Usage: /model NAME")
        else:
            client.set_model(argument)
            client.ui_manager.show_success(f"Model set to {argument}")
    else:
        client.ui_manager.show_error(f"Unknown command: {user_input}")
    return True


def run_repl(client: ChatClient, session: PromptSession) -> None:
    while True:
        try:
            user_input = session.prompt().strip()
        except KeyboardInterrupt:
            client.ui_manager.console.print()
            client.ui_manager.show_goodbye()
            break
        except EOFError:
            break

        if not user_input:
            continue

        if user_input.startswith('/'):
            if not handle_command(client, user_input):
                break
            continue

        # Ctrl+C during the reply is handled inside chat()
        client.chat(user_input)


def main(argv=None):
    """Main entry point for the chat CLI.

    Exit Codes:
        0: Normal exit (user quit)
        1: Error (bad configuration, server unreachable, ...)
    """
    args = build_parser().parse_args(argv)

    try:
        config = ChatConfig.from_args(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(1)

    setup_logging(config)
    logger.debug("Starting with config: %s", config.model_dump())

    try:
        client = ChatClient(config, check_connection=not args.no_check)
    except ConnectionError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    client.ui_manager.show_welcome(config.model)

    try:
        run_repl(client, create_prompt_session())
    except Exception as e:
        logger.exception("Chat loop crashed")
        client.ui_manager.show_error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
