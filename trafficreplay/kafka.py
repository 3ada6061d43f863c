"""Kafka message format and connection settings."""

from __future__ import annotations

import json
import ssl
from dataclasses import dataclass, field

CRLF = "\r\n"


@dataclass
class SASLConfig:
    """SASL authentication settings."""

    use_sasl: bool = False
    mechanism: str = ""
    username: str = ""
    password: str = ""


@dataclass
class KafkaTLSConfig:
    """Certificate files used to connect to a secured cluster."""

    ca_cert: str = ""
    client_cert: str = ""
    client_key: str = ""


@dataclass
class KafkaMessage:
    """A captured request as carried in a JSON Kafka record."""

    req_url: str = ""
    req_type: str = ""
    req_id: str = ""
    req_ts: str = ""
    req_method: str = ""
    req_body: str = ""
    req_headers: dict[str, str] = field(default_factory=dict)

    def dump(self) -> bytes:
        """Return the payload header line and the request in HTTP/1.1 wire form."""
        parts = [
            f"{self.req_type} {self.req_id} {self.req_ts}\n",
            f"{self.req_method} {self.req_url} HTTP/1.1{CRLF}",
        ]
        parts.extend(f"{key}: {value}{CRLF}" for key, value in self.req_headers.items())
        parts.append(CRLF)
        parts.append(self.req_body)
        return "".join(parts).encode()

    def to_json(self) -> str:
        """Serialise the message; empty body and headers are left out."""
        doc: dict[str, object] = {
            "Req_URL": self.req_url,
            "Req_Type": self.req_type,
            "Req_ID": self.req_id,
            "Req_Ts": self.req_ts,
            "Req_Method": self.req_method,
        }
        if self.req_body:
            doc["Req_Body"] = self.req_body
        if self.req_headers:
            doc["Req_Headers"] = dict(self.req_headers)
        return json.dumps(doc)


def parse_kafka_message(text: str | bytes) -> KafkaMessage:
    """Build a :class:`KafkaMessage` from its JSON form."""
    doc = json.loads(text)
    if not isinstance(doc, dict):
        raise ValueError("kafka message must be a JSON object")
    headers = doc.get("Req_Headers") or {}
    if not isinstance(headers, dict):
        raise ValueError("Req_Headers must be an object")
    return KafkaMessage(
        req_url=doc.get("Req_URL", ""),
        req_type=doc.get("Req_Type", ""),
        req_id=doc.get("Req_ID", ""),
        req_ts=doc.get("Req_Ts", ""),
        req_method=doc.get("Req_Method", ""),
        req_body=doc.get("Req_Body", ""),
        req_headers={str(k): str(v) for k, v in headers.items()},
    )


def new_tls_context(client_cert: str, client_key: str, ca_cert: str) -> ssl.SSLContext:
    """Create a client TLS context from optional certificate files."""
    if client_cert and not client_key:
        raise ValueError("Missing key of client certificate in kafka")
    if client_key and not client_cert:
        raise ValueError("missing TLS client certificate in kafka")

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    if client_cert and client_key:
        context.load_cert_chain(certfile=client_cert, keyfile=client_key)
    if ca_cert:
        context.load_verify_locations(cafile=ca_cert)
    else:
        context.load_default_certs()
    return context