"""
Shared pytest fixtures for APCUPSD Exporter tests.
"""

import os
import socket
import sys
import threading

import pytest

# Add the source directory to the path so we can import the exporter modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "rootfs", "usr", "src")))

import config as config_module
import state as state_module


def build_raw_status(pairs) -> str:
    """Build a NIS status response the way apcupsd frames it."""
    raw = ""
    for key, value in pairs:
        line = f"{key} : {value}"
        raw += "\x00" + chr(len(line) + 1) + line + "\n"
    return raw + "  \n\x00\x00"


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset global state before each test."""
    context = state_module.get_context()
    context.reset()
    context.config = config_module.ConfigModel()
    context.version = "test"
    yield


@pytest.fixture
def context():
    return state_module.get_context()


@pytest.fixture
def status_builder():
    return build_raw_status


@pytest.fixture
def raw_status():
    """Sample NIS status response with units."""
    return build_raw_status(
        [
            ("APC      ", "001,036,0876"),
            ("DATE     ", "2024-05-01 10:00:00 +0200"),
            ("HOSTNAME ", "nas"),
            ("VERSION  ", "3.14.14 (31 May 2016) debian"),
            ("UPSNAME  ", "ups1"),
            ("CABLE    ", "USB Cable"),
            ("DRIVER   ", "USB UPS Driver"),
            ("UPSMODE  ", "Stand Alone"),
            ("MODEL    ", "Back-UPS RS 900G"),
            ("STATUS   ", "ONLINE"),
            ("LINEV    ", "230.0 Volts"),
            ("LOADPCT  ", "15.0 Percent"),
            ("BCHARGE  ", "100.0 Percent"),
            ("TIMELEFT ", "45.0 Minutes"),
            ("NOMPOWER ", "540 Watts"),
        ]
    )


@pytest.fixture
def nis_server():
    """
    Loopback TCP server answering every connection with a canned response.

    Yields a callable taking the response bytes and returning (host, port).
    """
    listeners = []

    def start(response: bytes, close_after: bool = True):
        listener = socket.create_server(("127.0.0.1", 0))
        listeners.append(listener)
        received = []

        def serve():
            try:
                conn, _ = listener.accept()
            except OSError:
                return
            with conn:
                received.append(conn.recv(1024))
                conn.sendall(response)
                if not close_after:
                    # Keep the connection open until the client goes away
                    try:
                        conn.recv(1024)
                    except OSError:
                        pass

        thread = threading.Thread(target=serve, daemon=True)
        thread.start()
        host, port = listener.getsockname()
        return host, port, received

    yield start

    for listener in listeners:
        listener.close()
