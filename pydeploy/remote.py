"""Remote access providers.

The deployment engine talks to the remote host through the small
:class:`RemoteAccess` interface. :class:`SSHRemote` implements it on top of
paramiko (SSH exec for commands, SFTP for uploads).
"""

import logging
import posixpath
import queue
import shlex
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Protocol

import paramiko

from .exceptions import RemoteCommandError, TransferError
from .utils import DEFAULT_COMMAND_TIMEOUT, DEFAULT_SSH_PORT

logger = logging.getLogger(__name__)

# OpenSSH allows 10 sessions per connection by default (MaxSessions); keep
# room for the exec channel used for commands
MAX_SFTP_SESSIONS = 8


@dataclass
class CommandResult:
    """Result of a command executed on the remote host."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class RemoteAccess(Protocol):
    """Capabilities the deployment engine needs from a remote host."""

    find_command: Optional[str]
    """Path of a GNU ``find`` supporting ``-printf``, or None if unavailable"""

    def run_command(self, command: str) -> CommandResult: ...

    def put_file(self, local_path: Path, remote_path: str) -> None: ...


class SSHRemote:
    """Remote access over SSH using paramiko.

    Uploads borrow SFTP sessions from a pool on the shared transport; at most
    ``max_sftp_sessions`` are open at once and all are closed by :meth:`close`.
    Remote directories are created once per run and cached.

    Examples:
        >>> with SSHRemote("ibmi.example.com", user="dev") as remote:
        ...     remote.run_command("pwd").stdout
    """

    def __init__(
        self,
        host: str,
        user: Optional[str] = None,
        port: int = DEFAULT_SSH_PORT,
        key_file: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ):
        """Initialize the remote.

        Args:
            host: Remote host name
            user: Login user (defaults to the local user)
            port: SSH port
            key_file: Private key file
            password: Password, if not using keys
            timeout: Timeout for remote commands in seconds
        """
        self.host = host
        self.user = user
        self.port = port
        self.key_file = key_file
        self.password = password
        self.timeout = timeout
        self.find_command: Optional[str] = None
        self._client: Optional[paramiko.SSHClient] = None
        self.max_sftp_sessions = MAX_SFTP_SESSIONS
        self._sftp_lock = threading.Lock()
        self._sftp_sessions: list[paramiko.SFTPClient] = []
        self._idle_sftp: "queue.Queue[paramiko.SFTPClient]" = queue.Queue()
        self._dir_lock = threading.Lock()
        self._created_dirs: set[str] = set()

    def __enter__(self) -> "SSHRemote":
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def connect(self) -> None:
        """Open the SSH connection and detect remote features."""
        if self._client is not None:
            return

        logger.debug(f"Connecting to {self.user or ''}@{self.host}:{self.port}")
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=self.host,
                port=self.port,
                username=self.user,
                key_filename=self.key_file,
                password=self.password,
                timeout=20,
                banner_timeout=30,
                auth_timeout=30,
            )
        except (paramiko.SSHException, OSError) as e:
            raise RemoteCommandError(f"Unable to connect to {self.host}: {e}") from e
        self._client = client
        self.find_command = self._detect_find()

    def close(self) -> None:
        """Close SFTP sessions and the SSH connection."""
        with self._sftp_lock:
            sessions = self._sftp_sessions
            self._sftp_sessions = []
            self._idle_sftp = queue.Queue()
        for sftp in sessions:
            sftp.close()
        if self._client is not None:
            self._client.close()
            self._client = None
        self._created_dirs.clear()

    def _detect_find(self) -> Optional[str]:
        """Locate a ``find`` that understands ``-printf``."""
        for candidate in ("/QOpenSys/pkgs/bin/find", "find"):
            result = self.run_command(
                f"{candidate} /dev/null -maxdepth 0 -printf '%p'"
            )
            if result.ok:
                logger.debug(f"Remote supports listing via {candidate}")
                return candidate
        logger.debug("Remote has no find supporting -printf")
        return None

    def run_command(self, command: str) -> CommandResult:
        """Run a shell command on the remote host.

        Args:
            command: Shell command line

        Returns:
            CommandResult with exit code and decoded output

        Raises:
            RemoteCommandError: If the command could not be started
        """
        if self._client is None:
            raise RemoteCommandError("Not connected")
        try:
            _, stdout, stderr = self._client.exec_command(
                command, timeout=self.timeout
            )
            out = stdout.read().decode("utf-8", errors="replace")
            err = stderr.read().decode("utf-8", errors="replace")
            exit_code = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            raise RemoteCommandError(f"Remote command failed: {command!r}: {e}") from e
        logger.debug(f"Remote command {command!r} exited {exit_code}")
        return CommandResult(exit_code=exit_code, stdout=out, stderr=err)

    def _checkout_sftp(self) -> paramiko.SFTPClient:
        """Take an idle SFTP session, opening a new one while under the cap."""
        try:
            return self._idle_sftp.get_nowait()
        except queue.Empty:
            pass

        with self._sftp_lock:
            if self._client is None:
                raise TransferError("Not connected")
            if len(self._sftp_sessions) < self.max_sftp_sessions:
                try:
                    sftp = self._client.open_sftp()
                except paramiko.SSHException as e:
                    if not self._sftp_sessions:
                        raise TransferError(f"Unable to open SFTP session: {e}") from e
                    # The server allows fewer sessions than the cap
                    self.max_sftp_sessions = len(self._sftp_sessions)
                    logger.debug(f"SFTP sessions limited to {self.max_sftp_sessions}: {e}")
                else:
                    self._sftp_sessions.append(sftp)
                    logger.debug(f"Opened SFTP session {len(self._sftp_sessions)}")
                    return sftp
            idle = self._idle_sftp

        try:
            return idle.get(timeout=self.timeout)
        except queue.Empty:
            raise TransferError("Timed out waiting for an SFTP session")

    def _discard_sftp(self, sftp: paramiko.SFTPClient) -> None:
        with self._sftp_lock:
            if sftp in self._sftp_sessions:
                self._sftp_sessions.remove(sftp)
        sftp.close()

    @contextmanager
    def _sftp_session(self) -> Iterator[paramiko.SFTPClient]:
        """Borrow a pooled SFTP session; broken sessions are dropped."""
        idle = self._idle_sftp
        sftp = self._checkout_sftp()
        broken = False
        try:
            yield sftp
        except (paramiko.SSHException, EOFError):
            broken = True
            raise
        finally:
            if broken:
                self._discard_sftp(sftp)
            else:
                idle.put(sftp)

    def _ensure_remote_dir(self, remote_dir: str) -> None:
        with self._dir_lock:
            if remote_dir in self._created_dirs:
                return
            result = self.run_command(f"mkdir -p {shlex.quote(remote_dir)}")
            if not result.ok:
                raise TransferError(
                    f"Unable to create {remote_dir}: {result.stderr.strip()}"
                )
            self._created_dirs.add(remote_dir)

    def put_file(self, local_path: Path, remote_path: str) -> None:
        """Upload one file, creating its remote directory if needed.

        Raises:
            TransferError: If the upload fails
        """
        try:
            self._ensure_remote_dir(posixpath.dirname(remote_path))
            with self._sftp_session() as sftp:
                sftp.put(str(local_path), remote_path)
        except TransferError:
            raise
        except (paramiko.SSHException, RemoteCommandError, OSError, EOFError) as e:
            raise TransferError(str(e)) from e
