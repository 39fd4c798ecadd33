"""
rcoil CLI - command-line interface for running coil plans.

Commands:
- rcoil run <plan.yaml> - Run a plan, optionally recording a trace
- rcoil plan <plan.yaml> - Print the execution tree of a plan
- rcoil version - Show the version
"""

from .main import cli

__all__ = ["cli"]
