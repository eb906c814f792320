"""Notify the game server of a vote over the Votifier protocol.

Only protocol version 2 (shared token, HMAC-signed JSON) is spoken. The
relay makes one attempt per vote; any failure is reported as
:class:`RelayError` and retrying is left to the player.
"""

import base64
import hashlib
import hmac
import json
import logging
import socket
import struct

from .errors import RelayError

logger = logging.getLogger(__name__)

VOTIFIER_MAGIC = 0x733A
GREETING_PREFIX = 'VOTIFIER'


class VoteRelay:
    def send_vote(self, identity: str, service_name: str, timestamp: int) -> None:
        raise NotImplementedError


class VotifierRelay(VoteRelay):
    def __init__(self, host: str, port: int, token: str, timeout_ms: int = 5000, address: str = None):
        self.host = host
        self.port = int(port)
        self.token = token or ''
        self.timeout = timeout_ms / 1000.0
        self.address = address or host

    def build_message(self, identity: str, service_name: str, timestamp: int, challenge: str) -> bytes:
        payload = json.dumps({
            'serviceName': service_name,
            'username': identity,
            'address': self.address,
            'timestamp': int(timestamp),
            'challenge': challenge,
        })
        digest = hmac.new(self.token.encode('utf-8'), payload.encode('utf-8'), hashlib.sha256).digest()
        body = json.dumps({
            'payload': payload,
            'signature': base64.b64encode(digest).decode('ascii'),
        }).encode('utf-8')
        return struct.pack('>HH', VOTIFIER_MAGIC, len(body)) + body

    def send_vote(self, identity: str, service_name: str, timestamp: int) -> None:
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout) as conn:
                with conn.makefile('rb') as stream:
                    challenge = self._read_challenge(stream.readline())
                    conn.sendall(self.build_message(identity, service_name, timestamp, challenge))
                    reply = stream.readline()
        except socket.timeout as exc:
            raise RelayError(f"timed out talking to {self.host}:{self.port}") from exc
        except OSError as exc:
            raise RelayError(f"could not reach {self.host}:{self.port}: {exc}") from exc
        self._check_reply(reply)
        logger.info(f"[relay-ok] host={self.host}:{self.port} service={service_name} user={identity}")

    @staticmethod
    def _read_challenge(line: bytes) -> str:
        parts = line.decode('utf-8', 'replace').split()
        if len(parts) < 3 or parts[0] != GREETING_PREFIX or parts[1] != '2':
            raise RelayError(f"unexpected Votifier greeting {line!r}")
        return parts[2]

    @staticmethod
    def _check_reply(reply: bytes) -> None:
        if not reply:
            raise RelayError('server closed the connection without a reply')
        try:
            status = json.loads(reply.decode('utf-8'))
        except ValueError as exc:
            raise RelayError(f"unreadable Votifier reply {reply!r}") from exc
        if not isinstance(status, dict) or status.get('status') != 'ok':
            cause = status.get('cause') if isinstance(status, dict) else None
            error = status.get('error') if isinstance(status, dict) else None
            raise RelayError(f"vote rejected by server: {cause or 'unknown'} {error or ''}".strip())
