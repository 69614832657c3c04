"""Agent tools."""

from courier.tools.file_system import FileActionResult, make_file_tools, perform_file_action

__all__ = ["FileActionResult", "make_file_tools", "perform_file_action"]
