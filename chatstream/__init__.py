"""
ChatStream: a terminal client for streaming chat generation services.

The package is split into focused components:
- streaming: byte stream to events to message content, with cancellation
- markup: makes partial Markdown/LaTeX safe to render at every instant
- client: configuration, HTTP transport, rich display and the CLI
"""

__version__ = "0.1.0"
