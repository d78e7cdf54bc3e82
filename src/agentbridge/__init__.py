"""agentbridge: session and dispatch core bridging a chat UI to AI agent backends."""

__version__ = "0.1.0"
