import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

BOUNDARY = "----uploadgate-test-boundary"


def build_multipart(parts, boundary=BOUNDARY):
    """Encode ``parts`` as a multipart body.

    Each part is ``(name, value)`` for a plain field or
    ``(name, filename, data, content_type)`` for a file.
    """
    chunks = []
    for part in parts:
        chunks.append(f"--{boundary}\r\n".encode())
        if len(part) == 2:
            name, value = part
            chunks.append(f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode())
            chunks.append(value.encode() if isinstance(value, str) else value)
        else:
            name, filename, data, content_type = part
            chunks.append(
                f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'.encode()
            )
            chunks.append(f"Content-Type: {content_type}\r\n\r\n".encode())
            chunks.append(data)
        chunks.append(b"\r\n")
    chunks.append(f"--{boundary}--\r\n".encode())
    return f"multipart/form-data; boundary={boundary}", b"".join(chunks)


class FakeContext:
    """In-memory request context recording how much of the body was read."""

    def __init__(self, body=b"", content_type=None, headers=None, chunk_size=64 * 1024):
        self.headers = {}
        if content_type is not None:
            self.headers["content-type"] = content_type
        for key, value in (headers or {}).items():
            self.headers[key.lower()] = value
        self.body = body
        self.chunk_size = chunk_size
        self.bytes_read = 0
        self.result = None
        self.fields = None

    def header(self, name):
        return self.headers.get(name.lower())

    async def _chunks(self):
        for start in range(0, len(self.body), self.chunk_size):
            chunk = self.body[start:start + self.chunk_size]
            self.bytes_read += len(chunk)
            yield chunk

    def stream(self):
        return self._chunks()

    async def json(self):
        return json.loads(self.body)

    def attach_result(self, result):
        self.result = result

    def attach_fields(self, fields):
        self.fields = fields


@pytest.fixture
def multipart_context():
    def _make(parts, headers=None, chunk_size=64 * 1024):
        content_type, body = build_multipart(parts)
        return FakeContext(body, content_type, headers=headers, chunk_size=chunk_size)

    return _make
