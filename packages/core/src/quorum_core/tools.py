"""Tool capabilities that reviewer sessions may call.

Reviewers get ``read`` by default so they can look beyond the diff at the
surrounding code. ``bash`` is opt-in through the ``tools`` config key; it runs
in the working directory with a per-command timeout.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

_MAX_OUTPUT_CHARS = 50_000
_DEFAULT_READ_LIMIT = 2000
_BASH_TIMEOUT_SECONDS = 60


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    parameters: dict  # JSON schema of the arguments object
    handler: Callable[[dict], Awaitable[str]]

    async def run(self, arguments: dict) -> str:
        return await self.handler(arguments)


def _truncate(text: str) -> str:
    if len(text) > _MAX_OUTPUT_CHARS:
        return text[:_MAX_OUTPUT_CHARS] + "\n... [output truncated]"
    return text


def create_read_tool(cwd: str | Path) -> Tool:
    root = Path(cwd).resolve()

    async def _read(arguments: dict) -> str:
        path = (root / arguments["path"]).resolve()
        if root != path and root not in path.parents:
            raise ValueError(f"Path is outside the working directory: {arguments['path']}")
        if not path.is_file():
            raise FileNotFoundError(f"No such file: {arguments['path']}")

        offset = max(int(arguments.get("offset") or 1), 1)
        limit = int(arguments.get("limit") or _DEFAULT_READ_LIMIT)
        lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
        selected = lines[offset - 1 : offset - 1 + limit]
        numbered = "\n".join(f"{n:>6}\t{line}" for n, line in enumerate(selected, offset))
        return _truncate(numbered)

    return Tool(
        name="read",
        description=(
            "Read a text file from the repository. Paths are relative to the repository root. "
            "Returns numbered lines; use offset/limit for large files."
        ),
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "File path relative to the repository root."},
                "offset": {"type": "integer", "description": "1-based line number to start from."},
                "limit": {"type": "integer", "description": "Maximum number of lines to return."},
            },
            "required": ["path"],
        },
        handler=_read,
    )


def create_bash_tool(cwd: str | Path, timeout: float = _BASH_TIMEOUT_SECONDS) -> Tool:
    workdir = str(Path(cwd).resolve())

    async def _bash(arguments: dict) -> str:
        command = arguments["command"]
        logger.debug("bash tool: %s", command)
        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=workdir,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise TimeoutError(f"Command timed out after {timeout}s: {command}")
        output = stdout.decode("utf-8", errors="replace")
        if proc.returncode:
            output += f"\n[exit code {proc.returncode}]"
        return _truncate(output)

    return Tool(
        name="bash",
        description="Run a shell command in the repository root (e.g. git log, grep) and return its output.",
        parameters={
            "type": "object",
            "properties": {"command": {"type": "string", "description": "The shell command to run."}},
            "required": ["command"],
        },
        handler=_bash,
    )


_TOOL_FACTORIES = {
    "read": create_read_tool,
    "bash": create_bash_tool,
}


def build_tools(names: list[str], cwd: str | Path) -> list[Tool]:
    """Instantiate the named tools, rejecting unknown names."""
    tools = []
    for name in names:
        factory = _TOOL_FACTORIES.get(name)
        if factory is None:
            raise ValueError(f"Unknown tool: {name!r}. Choose from {sorted(_TOOL_FACTORIES)}.")
        tools.append(factory(cwd))
    return tools
