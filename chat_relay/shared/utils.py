import socket
from typing import Optional


def mask_key(key: Optional[str]) -> str:
    """Show only the edges of a credential in logs."""
    if not key:
        return "<none>"
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


def get_local_ip() -> str:
    """Best-effort LAN address, used only for the startup banner."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        # No packet is sent; connecting a UDP socket just picks a route.
        sock.connect(("10.255.255.255", 1))
        return sock.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        sock.close()
