"""Request signature generation for the telemetry endpoint."""

from __future__ import annotations

import hashlib
import time

DEFAULT_ALGORITHM = "md5"


def current_timestamp() -> str:
    """Epoch milliseconds as sent in the ``timestamp`` header."""
    return str(int(time.time() * 1000))


class Signer:
    """Derives ``hex(hash(path + secret + timestamp))`` signatures.

    MD5 matches what the EnergyGrid server verifies. Any ``hashlib``
    algorithm name can be supplied for servers that expect another digest.
    """

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM) -> None:
        hashlib.new(algorithm)
        self.algorithm = algorithm

    def sign(self, endpoint_path: str, shared_secret: str, timestamp: str) -> str:
        if not endpoint_path:
            raise ValueError("Endpoint path must not be empty.")
        if not shared_secret:
            raise ValueError("Shared secret must not be empty.")
        digest = hashlib.new(self.algorithm)
        digest.update(f"{endpoint_path}{shared_secret}{timestamp}".encode("utf-8"))
        return digest.hexdigest()
