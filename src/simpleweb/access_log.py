"""
=============================================================================
ACCESS LOG
=============================================================================

One log record per handled connection, written to the "simpleweb.access"
logger after the response has been sent.

    text:  127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /style.css" 200 1234 0.84ms
    json:  {"conn_id": "3f2a1b9c", "method": "GET", "path": "/style.css", ...}

Because it is a separate logger, the access log can be routed or silenced
on its own:

    logging.getLogger("simpleweb.access").setLevel(logging.WARNING)

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Optional

from .core.connection import Connection
from .http.request import RequestHead
from .http.response import HTTPResponse


logger = logging.getLogger("simpleweb.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one connection.

    Attributes:
        conn_id: Connection id, matches the id in the other log lines.
        method: Method token as sent, or "-" if no request line was read.
        path: Request target, or "-".
        client_ip: Peer address.
        user_agent: User-Agent header, or "-".
        status_code: Status sent back, or 0 if nothing was sent.
        content_length: Response body size in bytes.
        duration_ms: Time from accept to response sent.
        timestamp: Apache-style local time.
    """

    conn_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "conn_id": self.conn_id,
            "method": self.method,
            "path": self.path,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Apache common-log style line with a trailing duration."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )

    @classmethod
    def build(
        cls,
        conn: Connection,
        head: Optional[RequestHead],
        response: Optional[HTTPResponse],
    ) -> "RequestLog":
        """Collect the fields from what the worker has at the end."""
        return cls(
            conn_id=conn.id,
            method=head.method_name if head else "-",
            path=head.target if head else "-",
            client_ip=conn.client_ip,
            user_agent=(head.get_header("user-agent") if head else "") or "-",
            status_code=int(response.status) if response else 0,
            content_length=len(response.body) if response else 0,
            duration_ms=conn.age * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )


class AccessLogger:
    """
    Writes RequestLog entries as text or JSON.

        access = AccessLogger(log_format="json")
        access.log(conn, head, response)
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        if log_format not in ("text", "json"):
            raise ValueError(f"Unknown access log format: {log_format}")
        self.log_format = log_format
        self.log_level = log_level

    def format(self, entry: RequestLog) -> str:
        if self.log_format == "json":
            return json.dumps(entry.to_dict())
        return entry.to_text()

    def log(
        self,
        conn: Connection,
        head: Optional[RequestHead],
        response: Optional[HTTPResponse],
    ) -> RequestLog:
        entry = RequestLog.build(conn, head, response)
        logger.log(self.log_level, self.format(entry))
        return entry
