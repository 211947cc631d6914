"""
Terminal presentation of (streaming) assistant messages.

The stream loop and the display run on different timers: the worker thread
appends deltas as they arrive, while the Live display re-reads a snapshot of
the message ``refresh_per_second`` times a second. The display never touches
``raw_content`` directly; it sanitizes the snapshot and renders the result.
"""

import logging
from typing import List, Optional

from pylatexenc.latex2text import LatexNodes2Text
from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from ..markup import sanitize, scan_regions
from ..models import MessageSnapshot, Role
from ..streaming import StreamHandle, StreamOutcome
from .config import ChatConfig

logger = logging.getLogger(__name__)

ASSISTANT_TITLE = "🤖 Assistant"


class ResponseHandler:
    """Renders message snapshots with rich."""

    def __init__(self, config: ChatConfig, console: Optional[Console] = None):
        self.config = config
        self.console = console or Console()
        self._latex = LatexNodes2Text(
            keep_comments=False,
            strict_latex_spaces=False,
        )

    def renderable_text(self, snapshot: MessageSnapshot) -> str:
        """Sanitized (and optionally unicode-converted) view of a snapshot."""
        text = sanitize(snapshot.content, not snapshot.finalized)
        if self.config.math_display == 'unicode':
            text = self.math_to_unicode(text)
        return text

    def math_to_unicode(self, text: str) -> str:
        """Replace every math region with its Unicode approximation."""
        pieces: List[str] = []
        pos = 0
        for region in scan_regions(text):
            if not region.kind.is_math:
                continue
            start, end = region.inner
            pieces.append(text[pos:region.start])
            pieces.append(self._convert_latex(text[start:end], region.text(text)))
            pos = region.end
        pieces.append(text[pos:])
        return "".join(pieces)

    def _convert_latex(self, latex: str, original: str) -> str:
        try:
            return self._latex.latex_to_text(latex).strip()
        except Exception:
            logger.debug("LaTeX conversion failed for %.60r", latex)
            return original

    def build_panel(self, snapshot: MessageSnapshot) -> Panel:
        streaming = not snapshot.finalized
        title = f"[bold blue]{ASSISTANT_TITLE}{' (streaming)' if streaming else ''}[/bold blue]"
        text = self.renderable_text(snapshot)
        body = Markdown(text) if text else Text("▊" if streaming else "", style="blue")
        return Panel(body, title=title, border_style="blue")

    def display_response(self, snapshot: MessageSnapshot) -> None:
        """Print a finished message once."""
        if snapshot.role is Role.USER:
            self.console.print(Panel(Text(snapshot.content), title="[bold cyan]You[/bold cyan]",
                                     border_style="cyan"))
            return
        self.console.print(self.build_panel(snapshot))

    def follow_stream(self, handle: StreamHandle) -> MessageSnapshot:
        """Keep a Live panel in sync with ``handle`` until the stream exits."""
        interval = 1.0 / self.config.refresh_per_second
        with Live(console=self.console, refresh_per_second=self.config.refresh_per_second) as live:
            live.update(self.build_panel(handle.message.snapshot()))
            while not handle.join(interval):
                live.update(self.build_panel(handle.message.snapshot()))
            snapshot = handle.message.snapshot()
            live.update(self.build_panel(snapshot))

        if handle.outcome is StreamOutcome.CANCELLED:
            self.console.print("[dim]⏹ Generation stopped[/dim]")
        return snapshot
