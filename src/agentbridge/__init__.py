"""AgentBridge - client-side flows for a remote coding-assistant agent."""

__version__ = "0.1.0"
