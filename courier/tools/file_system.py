"""File tool for an LLM agent: read, write and list files under a root directory.

Paths outside the root are rejected. Failures come back as unsuccessful results,
never as exceptions, so the agent can read the message and correct itself."""

from pathlib import Path
from typing import Literal

from agents import function_tool
from pydantic import BaseModel

_ACCESS_DENIED_MSG = "Access denied: path is outside the tool root."

FileAction = Literal["read", "write", "list"]


class FileActionResult(BaseModel):
    """Result of one file_system call."""

    success: bool
    message: str
    content: str | None = None
    files: list[str] | None = None


def _resolve_path(root: Path, path: str) -> Path:
    """Resolve path against root. Raises PermissionError when it escapes root."""
    candidate = Path(path)
    target = candidate if candidate.is_absolute() else (root / candidate)
    target = target.resolve()
    try:
        target.relative_to(root)
    except ValueError:
        raise PermissionError(f"{_ACCESS_DENIED_MSG} Path: {path}") from None
    return target


def perform_file_action(
    root: Path,
    action: FileAction,
    path: str,
    content: str | None = None,
) -> FileActionResult:
    """Run one action. A write without content is rejected before touching disk."""
    root = root.resolve()
    try:
        target = _resolve_path(root, path)

        if action == "read":
            if not target.is_file():
                return FileActionResult(
                    success=False, message=f"Error: not a file or does not exist: {path}"
                )
            return FileActionResult(
                success=True,
                content=target.read_text(encoding="utf-8"),
                message=f"Successfully read file: {path}",
            )

        if action == "write":
            if not content:
                return FileActionResult(
                    success=False, message="Error: content is required for write action"
                )
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
            return FileActionResult(success=True, message=f"Successfully wrote file: {path}")

        if action == "list":
            if target.is_dir():
                files = sorted(p.name for p in target.iterdir())
                return FileActionResult(
                    success=True,
                    files=files,
                    message=f"Listed {len(files)} files in directory: {path}",
                )
            if target.exists():
                return FileActionResult(
                    success=True, files=[target.name], message=f"File exists: {path}"
                )
            return FileActionResult(success=False, message=f"Error: not found: {path}")

        return FileActionResult(success=False, message=f"Error: unknown action: {action}")
    except PermissionError as e:
        return FileActionResult(success=False, message=str(e))
    except (OSError, UnicodeDecodeError) as e:
        return FileActionResult(success=False, message=f"Error: {e}")


def make_file_tools(root: Path) -> list:
    """Create agent tools scoped to root."""

    @function_tool(name_override="file_system")
    def file_system(action: FileAction, path: str, content: str | None = None) -> str:
        """Read and write files for annotation output.

        Args:
            action: read (file contents), write (create or overwrite with content),
                list (directory entries, or the file name if path is a file).
            path: Path relative to the tool root.
            content: Required for write.
        """
        return perform_file_action(root, action, path, content).model_dump_json(
            exclude_none=True
        )

    return [file_system]
