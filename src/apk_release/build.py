from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from apk_release.errors import BuildFailure
from apk_release.schemas import BuildOutput

log = structlog.get_logger(__name__)


async def run_build(command: list[str], cwd: Path | None = None) -> BuildOutput:
    """Run the build tool and wait for it; a non-zero exit raises BuildFailure."""
    log.info("build_start", command=command, cwd=str(cwd) if cwd else None)
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        log.error("build_tool_missing", command=command)
        raise BuildFailure(127, str(e)) from e

    stdout, stderr = await proc.communicate()
    output = BuildOutput(
        command=list(command),
        returncode=proc.returncode,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )
    if output.returncode != 0:
        log.error("build_failed", returncode=output.returncode)
        raise BuildFailure(output.returncode, output.stderr)

    log.info("build_done", command=command)
    return output
