"""A small OSC-over-UDP server that routes ``/<alias>/<param>`` messages to modules."""

from __future__ import annotations

import os
import re
import socket
import struct
import sys
import threading
from typing import Any, Iterator, Mapping

BASE_PORT = 61245
MAX_ATTEMPTS = 100
PORT_ENV = "SIGNAL_CRATE_OSC_PORT"

_BUNDLE_TAG = b"#bundle\x00"
_ADDRESS_RE = re.compile(r"/([^/]{1,63})/\s*(\S{1,63})")

_current_port = ""


class OscError(Exception):
    """Raised for malformed OSC data, bad addresses or unroutable messages."""


def _pad(data: bytes) -> bytes:
    return data + b"\x00" * (-len(data) % 4)


def _encode_string(text: str) -> bytes:
    return _pad(text.encode("utf-8") + b"\x00")


def encode_message(address: str, *args: Any) -> bytes:
    """Encode an OSC message with int, float, str, bytes or bool arguments."""
    tags = [","]
    payload = []
    for arg in args:
        if isinstance(arg, bool):
            tags.append("T" if arg else "F")
        elif isinstance(arg, int):
            if -(2 ** 31) <= arg < 2 ** 31:
                tags.append("i")
                payload.append(struct.pack(">i", arg))
            else:
                tags.append("h")
                payload.append(struct.pack(">q", arg))
        elif isinstance(arg, float):
            tags.append("f")
            payload.append(struct.pack(">f", arg))
        elif isinstance(arg, str):
            tags.append("s")
            payload.append(_encode_string(arg))
        elif isinstance(arg, (bytes, bytearray)):
            tags.append("b")
            payload.append(struct.pack(">i", len(arg)) + _pad(bytes(arg)))
        else:
            raise OscError(f"unsupported OSC argument type: {type(arg).__name__}")
    return _encode_string(address) + _encode_string("".join(tags)) + b"".join(payload)


def _read_string(data: bytes, pos: int) -> tuple[str, int]:
    end = data.find(b"\x00", pos)
    if end < 0:
        raise OscError("unterminated OSC string")
    try:
        text = data[pos:end].decode("utf-8")
    except UnicodeDecodeError as exc:
        raise OscError("OSC string is not valid UTF-8") from exc
    return text, end + 1 + (-(end + 1) % 4)


def _unpack(fmt: str, data: bytes, pos: int) -> tuple[Any, int]:
    size = struct.calcsize(fmt)
    if pos + size > len(data):
        raise OscError("truncated OSC message")
    return struct.unpack_from(fmt, data, pos)[0], pos + size


def decode_message(data: bytes) -> tuple[str, list[Any]]:
    """Decode one OSC message into its address and argument list."""
    if not data.startswith(b"/"):
        raise OscError("OSC address must start with '/'")
    address, pos = _read_string(data, 0)
    if pos >= len(data):
        return address, []
    tags, pos = _read_string(data, pos)
    if not tags.startswith(","):
        raise OscError("missing OSC type tag string")
    args: list[Any] = []
    for tag in tags[1:]:
        if tag == "i":
            value, pos = _unpack(">i", data, pos)
        elif tag == "f":
            value, pos = _unpack(">f", data, pos)
        elif tag == "h":
            value, pos = _unpack(">q", data, pos)
        elif tag == "d":
            value, pos = _unpack(">d", data, pos)
        elif tag == "s":
            value, pos = _read_string(data, pos)
        elif tag == "b":
            size, pos = _unpack(">i", data, pos)
            if size < 0 or pos + size > len(data):
                raise OscError("truncated OSC blob")
            value = data[pos:pos + size]
            pos += size + (-size % 4)
        elif tag == "T":
            value = True
        elif tag == "F":
            value = False
        elif tag == "N":
            value = None
        else:
            raise OscError(f"unsupported OSC type tag: {tag!r}")
        args.append(value)
    return address, args


def _messages(data: bytes) -> Iterator[tuple[str, list[Any]]]:
    if not data.startswith(_BUNDLE_TAG):
        yield decode_message(data)
        return
    pos = len(_BUNDLE_TAG) + 8
    while pos < len(data):
        size, pos = _unpack(">i", data, pos)
        if size < 0 or pos + size > len(data):
            raise OscError("truncated OSC bundle element")
        yield from _messages(data[pos:pos + size])
        pos += size


def split_address(path: str) -> tuple[str, str]:
    """Split ``/<alias>/<param>`` into its two parts."""
    match = _ADDRESS_RE.match(path)
    if not match:
        raise OscError(f"Invalid path: {path}")
    return match.group(1), match.group(2)


def send_message(host: str, port: int | str, address: str, *args: Any) -> None:
    """Send one OSC message over UDP."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.sendto(encode_message(address, *args), (host, int(port)))


class OscServer:
    """UDP OSC server that sets module parameters by alias."""

    def __init__(self, modules: Mapping[str, Any], base_port: int = BASE_PORT,
                 max_attempts: int = MAX_ATTEMPTS) -> None:
        self.modules = modules
        self.base_port = base_port
        self.max_attempts = max_attempts
        self.port = ""
        self._sock: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._stopping = threading.Event()

    def dispatch(self, path: str, args: list[Any]) -> bool:
        """Deliver a message; return False if its first argument is not numeric."""
        if not args or isinstance(args[0], bool) or not isinstance(args[0], (int, float)):
            return False
        alias, param = split_address(path)
        value = float(args[0])
        for name, module in list(self.modules.items()):
            setter = getattr(module, "set_param", None)
            if name == alias and setter is not None:
                setter(param, value)
                return True
        raise OscError(f"No matching module for alias '{alias}'")

    def _serve(self) -> None:
        sock = self._sock
        while sock is not None and not self._stopping.is_set():
            try:
                data, _ = sock.recvfrom(65536)
            except socket.timeout:
                continue
            except OSError:
                break
            try:
                for path, args in _messages(data):
                    self.dispatch(path, args)
            except (OscError, ValueError) as exc:
                print(f"[osc] {exc}", file=sys.stderr)

    def start(self) -> "OscServer":
        """Bind the first free port from base_port upwards and start serving."""
        global _current_port
        if self._thread is not None:
            raise OscError("OSC server already running")
        for port in range(self.base_port, self.base_port + self.max_attempts):
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                sock.bind(("", port))
            except OSError:
                sock.close()
                continue
            sock.settimeout(0.1)
            self._sock = sock
            self._stopping.clear()
            self.port = str(port)
            self._thread = threading.Thread(target=self._serve, name="osc-server", daemon=True)
            self._thread.start()
            _current_port = self.port
            os.environ[PORT_ENV] = self.port
            print(f"[osc] OSC server started on port {self.port}")
            return self
        raise OscError(
            f"Failed to bind any port from {self.base_port} to "
            f"{self.base_port + self.max_attempts - 1}"
        )

    def stop(self) -> None:
        """Stop serving and release the port."""
        self._stopping.set()
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    def __enter__(self) -> "OscServer":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def start_osc_server(modules: Mapping[str, Any]) -> OscServer:
    """Start an OSC server on the default port range."""
    return OscServer(modules).start()


def current_osc_port() -> str:
    """Return the port of the most recently started server, or an empty string."""
    return _current_port