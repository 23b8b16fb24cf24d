from __future__ import annotations

import os

from cryptography.fernet import Fernet, InvalidToken


class CryptoError(RuntimeError):
    pass


SEALED_MARKER = "enc:"


def share_link_key() -> str:
    return os.getenv("DATA_ENCRYPTION_KEY", "").strip()


def encryption_enabled() -> bool:
    return bool(share_link_key())


def _cipher() -> Fernet:
    key = share_link_key()
    if not key:
        raise CryptoError("Falta DATA_ENCRYPTION_KEY para abrir links de proposta cifrados.")
    try:
        return Fernet(key.encode("utf-8"))
    except ValueError as exc:
        raise CryptoError("DATA_ENCRYPTION_KEY invalida (deve ser Fernet urlsafe base64).") from exc


def is_sealed(token: str | None) -> bool:
    return bool(token) and token.startswith(SEALED_MARKER)


def seal_token(token: str) -> str:
    """
    Cifra um token de compartilhamento quando DATA_ENCRYPTION_KEY existe.

    Sem chave configurada o token segue em claro (base64 do JSON).
    """
    if not token or is_sealed(token) or not encryption_enabled():
        return token
    sealed = _cipher().encrypt(token.encode("utf-8"))
    return SEALED_MARKER + sealed.decode("utf-8")


def open_token(token: str | None) -> str:
    if not token:
        return ""
    if not is_sealed(token):
        return token
    try:
        opened = _cipher().decrypt(token[len(SEALED_MARKER) :].encode("utf-8"))
    except InvalidToken as exc:
        raise CryptoError("Nao foi possivel abrir o link da proposta (chave incorreta).") from exc
    return opened.decode("utf-8")
