"""signal-cli gateway adapter.

Implements the core GatewayPort by invoking signal-cli as a child process
for every discrete action, and wraps the long-lived `receive` process as an
iterable stream of parsed events.
"""

from __future__ import annotations

import json
import logging
import subprocess
from typing import Any, Dict, Iterator, List, Optional, Sequence

from adapters.signal_mapper import parse_contacts, parse_group_listing, parse_receive_line
from core.errors import GatewayError, StartupError
from core.models import GroupListing, ReceiveEvent

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0


class SignalCliGateway:
    """Thin signal-cli wrapper that satisfies the GatewayPort contract."""

    def __init__(
        self,
        account: str,
        binary: str = "signal-cli",
        config_dir: Optional[str] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._account = account
        self._binary = binary
        self._config_dir = config_dir
        self._timeout = timeout

    def _base_args(self, json_output: bool = False) -> List[str]:
        args = [self._binary]
        if self._config_dir:
            args.extend(["--config", self._config_dir])
        args.extend(["-u", self._account])
        if json_output:
            args.extend(["-o", "json"])
        return args

    def _run(self, args: Sequence[str]) -> str:
        """Run one invocation and return stdout; any failure is a GatewayError."""

        LOGGER.debug("Running %s", " ".join(args[1:]))
        try:
            completed = subprocess.run(
                list(args),
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise GatewayError(f"signal-cli timed out after {exc.timeout}s") from exc
        except OSError as exc:
            raise GatewayError(f"signal-cli could not be started: {exc}") from exc

        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            raise GatewayError(f"signal-cli failed ({completed.returncode}): {stderr}")
        return completed.stdout or ""

    def _run_json(self, command: Sequence[str]) -> Any:
        output = self._run(self._base_args(json_output=True) + list(command))
        if not output.strip():
            return []
        try:
            return json.loads(output)
        except json.JSONDecodeError as exc:
            raise GatewayError(f"signal-cli returned invalid JSON: {exc}") from exc

    def send_group_message(self, group_id: str, text: str) -> None:
        self._run(self._base_args() + ["send", "-g", group_id, "-m", text])

    def remove_member(self, group_id: str, member_id: str) -> None:
        self._run(self._base_args() + ["updateGroup", "-g", group_id, "--remove-member", member_id])

    def update_group_permissions(
        self,
        group_id: str,
        add_member: str,
        send_messages: str,
        edit_details: str,
    ) -> None:
        self._run(
            self._base_args()
            + [
                "updateGroup",
                "-g",
                group_id,
                "--set-permission-add-member",
                add_member,
                "--set-permission-send-messages",
                send_messages,
                "--set-permission-edit-details",
                edit_details,
            ]
        )

    def list_groups(self) -> List[GroupListing]:
        return parse_group_listing(self._run_json(["listGroups"]))

    def list_contacts(self) -> Dict[str, str]:
        return parse_contacts(self._run_json(["listContacts", "--all-recipients", "--detailed"]))

    def receive_command(self) -> List[str]:
        return self._base_args(json_output=True) + ["receive", "-t", "-1", "--ignore-attachments"]

    def receive(self) -> "ReceiveStream":
        return ReceiveStream(self.receive_command())


class ReceiveStream:
    """Long-lived `signal-cli receive` process exposed as parsed events.

    We explicitly manage the child's lifecycle (start on enter, terminate on
    exit or close) so it is obvious when the subprocess exists.
    """

    def __init__(self, command: Sequence[str]) -> None:
        self._command = list(command)
        self._process: Optional[subprocess.Popen] = None

    def __enter__(self) -> "ReceiveStream":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def start(self) -> None:
        if self._process is not None:
            return
        try:
            # stderr is inherited so gateway diagnostics reach the service log.
            self._process = subprocess.Popen(
                self._command,
                stdout=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise StartupError(f"Failed to start signal-cli receive: {exc}") from exc
        LOGGER.info("signal-cli receive started (pid %s)", self._process.pid)

    def lines(self) -> Iterator[str]:
        if self._process is None:
            self.start()
        assert self._process is not None and self._process.stdout is not None
        try:
            for line in self._process.stdout:
                yield line
        except (OSError, ValueError) as exc:
            LOGGER.warning("Receive stream read failed: %s", exc)
        LOGGER.warning("Receive stream closed")

    def __iter__(self) -> Iterator[ReceiveEvent]:
        for line in self.lines():
            event = parse_receive_line(line)
            if event is not None:
                yield event

    def close(self) -> None:
        process = self._process
        if process is None:
            return
        self._process = None
        if process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=10)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()
        if process.stdout is not None:
            process.stdout.close()
        LOGGER.info("signal-cli receive stopped (exit %s)", process.returncode)
