import json

MAX_LINE_BYTES = 256 * 1024


def send_json(sock, obj):
    """
    Serialize and send a JSON object over a socket, ending with a newline.
    """
    message = json.dumps(obj, separators=(",", ":")) + '\n'
    sock.sendall(message.encode('utf-8'))


def recv_json(sock, timeout=10, max_bytes=MAX_LINE_BYTES):
    """
    Receive one newline-delimited JSON object from a socket.
    Raises ValueError on oversized or undecodable input.
    """
    sock.settimeout(timeout)
    buffer = b""
    while b'\n' not in buffer:
        chunk = sock.recv(4096)
        if not chunk:
            if buffer:
                break
            raise ConnectionError("Socket closed while receiving data.")
        buffer += chunk
        if len(buffer) > max_bytes:
            raise ValueError(f"Message exceeds {max_bytes} bytes")

    message = buffer.split(b'\n', 1)[0]
    obj = json.loads(message.decode('utf-8'))
    if not isinstance(obj, dict):
        raise ValueError("Expected a JSON object")
    return obj
