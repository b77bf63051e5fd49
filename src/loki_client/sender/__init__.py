"""HTTP transport module for pushing batches to Loki."""

from .http_sender import JSON_CONTENT_TYPE, TENANT_HEADER, USER_AGENT, HTTPSender, SenderConfig

__all__ = ["HTTPSender", "SenderConfig", "JSON_CONTENT_TYPE", "TENANT_HEADER", "USER_AGENT"]
