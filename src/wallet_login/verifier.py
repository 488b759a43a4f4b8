"""Personal-message signature verification.

A client proves control of an address by signing the challenge nonce with
``personal_sign``: the nonce's UTF-8 bytes are prefixed with
``"\\x19Ethereum Signed Message:\\n" + len(message)``, hashed with keccak-256
and signed with secp256k1 ECDSA. Recovering the signer from the signature and
comparing it to the claimed address is the trust boundary of the handshake.
"""

from __future__ import annotations

import logging

from eth_account import Account
from eth_account.messages import encode_defunct

from .address import validate_address

logger = logging.getLogger(__name__)

# r (32) + s (32) + v (1)
SIGNATURE_LENGTH = 65


def _signature_bytes(signature: str | bytes) -> bytes:
    """Decode a hex (optionally 0x-prefixed) or raw signature."""
    if isinstance(signature, (bytes, bytearray)):
        raw = bytes(signature)
    elif isinstance(signature, str):
        hex_str = signature[2:] if signature[:2].lower() == "0x" else signature
        raw = bytes.fromhex(hex_str)
    else:
        raise TypeError(f"Unsupported signature type: {type(signature).__name__}")

    if len(raw) != SIGNATURE_LENGTH:
        raise ValueError(f"Invalid signature length ({len(raw)} bytes, expected {SIGNATURE_LENGTH})")
    return raw


def sign_nonce(private_key: str | bytes, nonce: str) -> str:
    """Sign a nonce the way a wallet's personal_sign does.

    Returns:
        0x-prefixed hex signature.
    """
    signed = Account.sign_message(encode_defunct(text=nonce), private_key=private_key)
    return "0x" + bytes(signed.signature).hex()


class SignatureVerifier:
    """Recovers personal-message signers and matches them to addresses."""

    def recover(self, nonce: str, signature: str | bytes) -> str | None:
        """Recover the canonical address that signed nonce.

        Returns None if the signature is malformed or recovery fails.
        """
        try:
            message = encode_defunct(text=nonce)
            recovered = Account.recover_message(message, signature=_signature_bytes(signature))
            return validate_address(recovered)
        except Exception as e:
            logger.debug(f"Signature recovery failed: {e}")
            return None

    def verify(self, address: str, nonce: str, signature: str | bytes) -> bool:
        """Check that signature over nonce was produced by address's key.

        Never raises; malformed input counts as a failed verification.
        """
        recovered = self.recover(nonce, signature)
        if recovered is None:
            return False
        return recovered == address.lower()
