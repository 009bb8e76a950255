"""Code-server workstation stack catalog."""

from .catalog import StackConfig, build_stack, managed_stack

__all__ = ["StackConfig", "build_stack", "managed_stack"]
