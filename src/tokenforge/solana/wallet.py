"""Wallet management and signing for TokenForge."""

from __future__ import annotations

import base64
import json
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from mnemonic import Mnemonic
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from tokenforge.core.config import DEFAULT_CONFIG_DIR

from .rpc import SolanaRPCClient

PBKDF_ITERATIONS = 390_000
KEY_FILENAME = "default_wallet.json"
MNEMONIC_STRENGTH = 256
MNEMONIC_WORD_COUNTS = {12, 15, 18, 21, 24}
BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


class WalletError(RuntimeError):
    """Raised when wallet operations fail."""


@runtime_checkable
class WalletSigner(Protocol):
    """What the launch pipeline needs from a wallet."""

    @property
    def public_key(self) -> Pubkey | None: ...

    async def sign_and_send(self, transaction: Transaction, connection: SolanaRPCClient) -> str: ...


@dataclass
class WalletStatus:
    """Represents the current wallet state."""

    exists: bool
    public_key: str | None
    is_unlocked: bool
    wallet_path: Path

    @property
    def masked_address(self) -> str:
        if not self.public_key:
            return "---"
        return f"{self.public_key[:4]}…{self.public_key[-4:]}"


@dataclass
class DecryptedPayload:
    """Represents decrypted wallet material."""

    secret_key: bytes
    mnemonic: str | None


class WalletManager:
    """Handles encrypted storage and unlocking of the payer keypair."""

    def __init__(self, keys_dir: Path | None = None) -> None:
        self.keys_dir = keys_dir or (DEFAULT_CONFIG_DIR / "keys")
        self.keys_dir.mkdir(parents=True, exist_ok=True)
        self.wallet_path = self.keys_dir / KEY_FILENAME
        self._unlocked: Keypair | None = None
        self._cached_public_key: str | None = None
        self._mnemonic = Mnemonic("english")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def wallet_exists(self) -> bool:
        return self.wallet_path.exists()

    def status(self) -> WalletStatus:
        return WalletStatus(
            exists=self.wallet_exists(),
            public_key=self._cached_public_key or self._load_public_key_safely(),
            is_unlocked=self._unlocked is not None,
            wallet_path=self.wallet_path,
        )

    def create_wallet(self, passphrase: str, *, force: bool = False) -> tuple[WalletStatus, str]:
        if self.wallet_exists() and not force:
            raise WalletError("Wallet already exists. Use force=True to overwrite.")

        mnemonic = self._mnemonic.generate(strength=MNEMONIC_STRENGTH)
        keypair = Keypair.from_seed(self._derive_seed_from_mnemonic(mnemonic))
        self._store(keypair, passphrase, mnemonic=mnemonic)
        self._unlocked = keypair
        return self.status(), mnemonic

    def restore_wallet(
        self,
        secret: str,
        passphrase: str,
        *,
        overwrite: bool = False,
    ) -> tuple[WalletStatus, str | None]:
        if self.wallet_exists() and not overwrite:
            raise WalletError("Wallet already exists. Pass overwrite=True to replace it.")

        mnemonic: str | None = None
        if self._looks_like_mnemonic(secret):
            mnemonic_candidate = " ".join(secret.strip().lower().split())
            if not self._mnemonic.check(mnemonic_candidate):
                raise WalletError("Invalid recovery phrase checksum.")
            keypair = Keypair.from_seed(self._derive_seed_from_mnemonic(mnemonic_candidate))
            mnemonic = mnemonic_candidate
        else:
            keypair = self._parse_secret_input(secret)

        self._store(keypair, passphrase, mnemonic=mnemonic)
        self._unlocked = None
        return self.status(), mnemonic

    def unlock_wallet(self, passphrase: str) -> WalletStatus:
        if not self.wallet_exists():
            raise WalletError("No wallet found. Run `tokenforge wallet create` first.")
        payload = self._decrypt_payload(passphrase)
        self._unlocked = self._keypair_from_secret(payload.secret_key)
        self._cached_public_key = str(self._unlocked.pubkey())
        return self.status()

    def lock_wallet(self) -> WalletStatus:
        self._unlocked = None
        return self.status()

    def export_wallet(self, passphrase: str) -> str:
        if not self.wallet_exists():
            raise WalletError("No wallet to export.")
        payload = self._decrypt_payload(passphrase)
        return json.dumps(list(payload.secret_key))

    def get_mnemonic(self, passphrase: str) -> str:
        payload = self._decrypt_payload(passphrase)
        if not payload.mnemonic:
            raise WalletError("Recovery phrase not available for this wallet.")
        return payload.mnemonic

    def get_keypair(self) -> Keypair:
        if self._unlocked is None:
            raise WalletError("Wallet is locked.")
        return self._unlocked

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _store(self, keypair: Keypair, passphrase: str, *, mnemonic: str | None) -> None:
        public_key = str(keypair.pubkey())
        payload = self._encrypt_payload(bytes(keypair), passphrase, public_key=public_key, mnemonic=mnemonic)
        self._write_payload(payload)
        self._set_permissions()
        self._cached_public_key = public_key

    def _encrypt_payload(
        self,
        secret: bytes,
        passphrase: str,
        *,
        public_key: str,
        mnemonic: str | None,
    ) -> dict[str, Any]:
        salt = os.urandom(16)
        nonce = os.urandom(12)
        aes_key = self._derive_key(passphrase, salt)
        payload_data = json.dumps(
            {
                "secret_key": base64.b64encode(secret).decode("ascii"),
                "mnemonic": mnemonic,
            },
            separators=(",", ":"),
        ).encode("utf-8")
        ciphertext = AESGCM(aes_key).encrypt(nonce, payload_data, associated_data=None)
        return {
            "public_key": public_key,
            "ciphertext": base64.b64encode(ciphertext).decode("ascii"),
            "nonce": base64.b64encode(nonce).decode("ascii"),
            "salt": base64.b64encode(salt).decode("ascii"),
            "iterations": PBKDF_ITERATIONS,
            "created_at": datetime.now(UTC).isoformat(),
        }

    def _decrypt_payload(self, passphrase: str) -> DecryptedPayload:
        data = self._read_payload()
        salt = base64.b64decode(data["salt"])
        nonce = base64.b64decode(data["nonce"])
        ciphertext = base64.b64decode(data["ciphertext"])
        aes_key = self._derive_key(passphrase, salt, iterations=int(data.get("iterations", PBKDF_ITERATIONS)))
        try:
            plaintext = AESGCM(aes_key).decrypt(nonce, ciphertext, associated_data=None)
        except Exception as exc:  # noqa: BLE001
            raise WalletError("Invalid passphrase for wallet.") from exc

        try:
            decoded = json.loads(plaintext.decode("utf-8"))
            return DecryptedPayload(
                secret_key=base64.b64decode(decoded["secret_key"]),
                mnemonic=decoded.get("mnemonic"),
            )
        except (json.JSONDecodeError, KeyError, ValueError) as exc:
            raise WalletError("Wallet payload is corrupted.") from exc

    def _parse_secret_input(self, value: str) -> Keypair:
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list) and all(isinstance(item, int) for item in parsed):
            return self._keypair_from_secret(bytes(parsed))
        try:
            secret = self._b58decode(value.strip())
        except WalletError as exc:
            raise WalletError("Unable to parse secret key input.") from exc
        return self._keypair_from_secret(secret)

    @staticmethod
    def _b58decode(value: str) -> bytes:
        if not value:
            raise WalletError("Empty base58 secret.")
        num = 0
        for char in value:
            try:
                num = num * 58 + BASE58_ALPHABET.index(char)
            except ValueError as exc:
                raise WalletError("Invalid base58 character in secret.") from exc

        full_bytes = num.to_bytes((num.bit_length() + 7) // 8, "big")
        zeros = len(value) - len(value.lstrip("1"))
        return b"\x00" * zeros + full_bytes

    @staticmethod
    def _keypair_from_secret(secret: bytes) -> Keypair:
        if len(secret) == 32:
            return Keypair.from_seed(secret)
        if len(secret) != 64:
            raise WalletError("Secret key must be 32 or 64 bytes.")
        try:
            keypair = Keypair.from_bytes(secret)
        except ValueError as exc:
            raise WalletError("Provided public key does not match private key.") from exc
        if bytes(keypair.pubkey()) != secret[32:]:
            raise WalletError("Provided public key does not match private key.")
        return keypair

    def _write_payload(self, payload: dict[str, Any]) -> None:
        self.wallet_path.write_text(json.dumps(payload, indent=2))

    def _read_payload(self) -> dict[str, Any]:
        if not self.wallet_exists():
            raise WalletError("Wallet not initialized.")
        return json.loads(self.wallet_path.read_text())

    def _set_permissions(self) -> None:
        try:
            os.chmod(self.wallet_path, 0o600)
        except PermissionError:
            # Ignore on platforms without chmod support (e.g., Windows)
            pass

    def _load_public_key_safely(self) -> str | None:
        if not self.wallet_exists():
            return None
        try:
            payload = self._read_payload()
            return payload.get("public_key")
        except (json.JSONDecodeError, OSError):
            return None

    @staticmethod
    def _derive_key(passphrase: str, salt: bytes, *, iterations: int = PBKDF_ITERATIONS) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=iterations,
        )
        return kdf.derive(passphrase.encode("utf-8"))

    def _derive_seed_from_mnemonic(self, mnemonic: str) -> bytes:
        seed = self._mnemonic.to_seed(mnemonic, passphrase="")
        return seed[:32]

    def _looks_like_mnemonic(self, candidate: str) -> bool:
        words = candidate.strip().lower().split()
        if len(words) not in MNEMONIC_WORD_COUNTS:
            return False
        return all(word in self._mnemonic.wordlist for word in words)


class KeystoreSigner:
    """Signs with the unlocked keystore key and broadcasts through RPC.

    The signer counts as connected only while the keystore is unlocked.
    """

    def __init__(self, manager: WalletManager) -> None:
        self._manager = manager

    @property
    def public_key(self) -> Pubkey | None:
        if not self._manager.status().is_unlocked:
            return None
        return self._manager.get_keypair().pubkey()

    async def sign_and_send(self, transaction: Transaction, connection: SolanaRPCClient) -> str:
        keypair = self._manager.get_keypair()
        transaction.partial_sign([keypair], transaction.message.recent_blockhash)
        return await connection.send_transaction(bytes(transaction))


__all__ = [
    "KeystoreSigner",
    "WalletError",
    "WalletManager",
    "WalletSigner",
    "WalletStatus",
]
