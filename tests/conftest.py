"""Shared fixtures for cryptguard tests."""

from pathlib import Path

import pytest
from Crypto.Cipher import AES

from cryptguard.config import ENV_SETTINGS_PATH, ENV_SNIFFER


PLAINTEXT_YAML = b"database:\n  user: admin\n  password: hunter2\n"

SOPS_YAML = b"""database:
    password: ENC[AES256_GCM,data:Tr7o1A==,iv:1234,tag:abcd,type:str]
sops:
    kms: []
    age:
        - recipient: age1qyqszqgpqyqszqgpqyqszqgpqyqszqgpqyqszqgpqyqszqgpqyqs
    lastmodified: "2024-01-01T00:00:00Z"
    version: 3.8.1
"""

VAULT_YAML = (
    b"$ANSIBLE_VAULT;1.1;AES256\n"
    b"62313365396662343061393464336163383764373764613633653634306231386433626436623361\n"
    b"6134333665353966363534333632666535333761666131620a663537646436643839616531643561\n"
)


def aes_ciphertext(size: int = 2048) -> bytes:
    """Deterministic AES-GCM ciphertext of a plaintext secrets file."""
    plaintext = (b"api_key: sk-live-0123456789abcdef\n" * (size // 34 + 1))[:size]
    cipher = AES.new(b"\x01" * 32, AES.MODE_GCM, nonce=b"\x02" * 12)
    ciphertext, tag = cipher.encrypt_and_digest(plaintext)
    return cipher.nonce + tag + ciphertext


def ascii_sniffer(data: bytes) -> str:
    return "ASCII text"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment overrides out of the tests."""
    monkeypatch.delenv(ENV_SETTINGS_PATH, raising=False)
    monkeypatch.delenv(ENV_SNIFFER, raising=False)


@pytest.fixture
def repo(tmp_path):
    """A scratch repository with a helper for writing files."""

    class Repo:
        def __init__(self, root: Path):
            self.root = root

        def write(self, rel_path: str, content) -> Path:
            path = self.root / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, str):
                content = content.encode("utf-8")
            path.write_bytes(content)
            return path

        def attributes(self, text: str) -> Path:
            return self.write(".gitattributes", text)

    return Repo(tmp_path)
