from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

ACCESS_TOKEN_KEY = "access_token"
DEFAULT_TOKEN_FILE = Path.home() / ".mevzuat-tara" / "session.json"


class CredentialProvider(Protocol):
    def token(self) -> str | None:
        ...


@dataclass
class StaticCredentials:
    """
    Fixed bearer token. Tests and one-off scripts.
    """

    access_token: str | None = None

    def token(self) -> str | None:
        return self.access_token or None


@dataclass
class EnvCredentials:
    variable: str = "MEVZUAT_ACCESS_TOKEN"

    def token(self) -> str | None:
        return os.environ.get(self.variable) or None


@dataclass
class TokenFileCredentials:
    """
    Client-side token store: the JSON session file written by the login flow.
    """

    path: Path = field(default_factory=lambda: DEFAULT_TOKEN_FILE)

    def token(self) -> str | None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        value = data.get(ACCESS_TOKEN_KEY)
        return value if isinstance(value, str) and value else None


@dataclass
class ChainedCredentials:
    providers: list[CredentialProvider]

    def token(self) -> str | None:
        for provider in self.providers:
            value = provider.token()
            if value:
                return value
        return None


def default_credentials(token_file: str | os.PathLike[str] | None = None) -> CredentialProvider:
    path = Path(token_file or os.environ.get("MEVZUAT_TOKEN_FILE") or DEFAULT_TOKEN_FILE)
    return ChainedCredentials([EnvCredentials(), TokenFileCredentials(path)])
