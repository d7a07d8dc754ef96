"""
CLI commands for the FusionAuth provider.
"""

from fusionauth_provider.cli.apply import apply_command, destroy_command
from fusionauth_provider.cli.plan import plan_command
from fusionauth_provider.cli.provider import health_command, resources_command
from fusionauth_provider.cli.state import import_command, show_command

__all__ = [
    "apply_command",
    "destroy_command",
    "health_command",
    "import_command",
    "plan_command",
    "resources_command",
    "show_command",
]
