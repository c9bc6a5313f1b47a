from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union
import hashlib
import logging
import os
import stat
import subprocess

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    command: list[str]
    stdout: str
    stderr: str
    returncode: int


class CommandRunner:
    """Runs package-manager commands on the local host."""

    def __init__(self, *, timeout: Optional[float] = None):
        self.timeout = timeout

    def run(
        self,
        command: Sequence[str],
        *,
        check: bool = True,
        env: Optional[dict[str, str]] = None,
        cwd: Optional[Union[str, Path]] = None,
    ) -> CommandResult:
        cmd_list = list(command)
        exec_env = None
        if env:
            exec_env = os.environ.copy()
            exec_env.update(env)

        logger.debug("run: %s", " ".join(cmd_list))
        proc = subprocess.run(
            cmd_list,
            capture_output=True,
            text=True,
            check=False,
            env=exec_env,
            cwd=str(cwd) if cwd is not None else None,
            timeout=self.timeout,
        )
        if check and proc.returncode != 0:
            raise subprocess.CalledProcessError(
                proc.returncode,
                cmd_list,
                proc.stdout,
                proc.stderr,
            )
        return CommandResult(cmd_list, proc.stdout, proc.stderr, proc.returncode)


@dataclass(frozen=True)
class FileStat:
    exists: bool
    mode: Optional[int] = None
    content_hash: Optional[str] = None


def content_hash(content: str) -> str:
    return "{sha256}" + hashlib.sha256(content.encode("utf-8", "surrogateescape")).hexdigest()


class FileBackend:
    """File-system primitives used by file resources."""

    def stat(self, path: Path) -> FileStat:
        raise NotImplementedError

    def read(self, path: Path) -> str:
        raise NotImplementedError

    def write(self, path: Path, content: str, mode: Optional[int]) -> None:
        raise NotImplementedError

    def remove(self, path: Path) -> None:
        raise NotImplementedError


class LocalFileBackend(FileBackend):
    """Backend acting on the local file system, optionally below ``root``."""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root is not None else None

    def resolve(self, path: Path) -> Path:
        path = Path(path)
        if self.root is None:
            return path
        return self.root / path.relative_to(path.anchor) if path.is_absolute() else self.root / path

    def stat(self, path: Path) -> FileStat:
        target = self.resolve(path)
        try:
            st = target.stat()
        except FileNotFoundError:
            return FileStat(exists=False)
        if not stat.S_ISREG(st.st_mode):
            return FileStat(exists=True, mode=stat.S_IMODE(st.st_mode))
        digest = hashlib.sha256(target.read_bytes()).hexdigest()
        return FileStat(
            exists=True,
            mode=stat.S_IMODE(st.st_mode),
            content_hash="{sha256}" + digest,
        )

    def read(self, path: Path) -> str:
        # surrogateescape keeps undecodable bytes intact through read and write.
        return self.resolve(path).read_bytes().decode("utf-8", "surrogateescape")

    def write(self, path: Path, content: str, mode: Optional[int]) -> None:
        target = self.resolve(path)
        if target.is_dir():
            raise IsADirectoryError(f"{target} is a directory")
        target.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode("utf-8", "surrogateescape")
        current = target.read_bytes() if target.exists() else None
        if current != data:
            target.write_bytes(data)
        if mode is not None and stat.S_IMODE(target.stat().st_mode) != mode:
            os.chmod(target, mode)

    def remove(self, path: Path) -> None:
        target = self.resolve(path)
        if target.is_dir() and not target.is_symlink():
            raise IsADirectoryError(f"{target} is a directory")
        target.unlink(missing_ok=True)
