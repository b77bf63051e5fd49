"""Client orchestration module coordinating ingress, batching and delivery."""

from .client import Client, create_default_client, wait_check_frequency

__all__ = ["Client", "create_default_client", "wait_check_frequency"]
