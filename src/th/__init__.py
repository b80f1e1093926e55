"""
th - terminal command assistant.

Turns a plain-language task into a single shell command using GitHub
Copilot, shows it, and runs it once you approve.

Architecture:
- client: credential store, GitHub device login, Copilot token exchange,
  streamed completion decoding
- orchestrator: drives login -> prompt -> completion -> approval -> execution
- ui / executor: terminal output and running the approved command

Usage:
    th list the ten largest files here
    th "find python files changed in the last day"
"""

__version__ = "0.3.0"
__author__ = "th contributors"
