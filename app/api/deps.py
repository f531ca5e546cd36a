from __future__ import annotations

"""Request-scoped dependencies.

Identity comes from the upstream auth layer as headers; a missing subject is
passed through as None and rejected by the service that needs it.
"""

from typing import Optional

from fastapi import Header

from gemini.client import GeminiClient, GenerationClient
from identity import Identity


def get_identity(
    x_auth_subject: Optional[str] = Header(default=None),
    x_auth_name: Optional[str] = Header(default=None),
    x_auth_email: Optional[str] = Header(default=None),
) -> Optional[Identity]:
    if not x_auth_subject or not x_auth_subject.strip():
        return None
    return Identity(subject=x_auth_subject, name=x_auth_name, email=x_auth_email)


def get_generation_client() -> GenerationClient:
    return GeminiClient.from_config()
