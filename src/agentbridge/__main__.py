"""Allow ``python -m agentbridge``."""

from agentbridge.cli import main

main()
