# infrastructure/tls/certificate_text.py
from __future__ import annotations

from typing import List

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa


def _public_key_line(cert: x509.Certificate) -> str:
    key = cert.public_key()
    if isinstance(key, rsa.RSAPublicKey):
        return f"RSA ({key.key_size} bit)"
    if isinstance(key, ec.EllipticCurvePublicKey):
        return f"EC {key.curve.name} ({key.key_size} bit)"
    if isinstance(key, dsa.DSAPublicKey):
        return f"DSA ({key.key_size} bit)"
    if isinstance(key, ed25519.Ed25519PublicKey):
        return "Ed25519"
    if isinstance(key, ed448.Ed448PublicKey):
        return "Ed448"
    return type(key).__name__


def _signature_line(cert: x509.Certificate) -> str:
    oid = cert.signature_algorithm_oid
    hash_alg = cert.signature_hash_algorithm
    if hash_alg is None:
        return oid.dotted_string
    return f"{hash_alg.name} ({oid.dotted_string})"


class CryptographyCertificateFormatter:
    """
    Renders a DER certificate as indented text, close to the first part of
    `openssl x509 -text`. Raises ValueError for undecodable input.
    """

    def format(self, der: bytes) -> str:
        cert = x509.load_der_x509_certificate(der)

        lines: List[str] = [
            "Certificate:",
            f"    Version: {cert.version.name}",
            f"    Serial Number: {cert.serial_number:x}",
            f"    Signature Algorithm: {_signature_line(cert)}",
            f"    Issuer: {cert.issuer.rfc4514_string()}",
            "    Validity:",
            f"        Not Before: {cert.not_valid_before_utc.isoformat()}",
            f"        Not After : {cert.not_valid_after_utc.isoformat()}",
            f"    Subject: {cert.subject.rfc4514_string()}",
            f"    Public Key: {_public_key_line(cert)}",
        ]

        try:
            san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
            names = [f"DNS:{n}" for n in san.get_values_for_type(x509.DNSName)]
            names += [f"IP:{ip}" for ip in san.get_values_for_type(x509.IPAddress)]
            lines.append(f"    Subject Alternative Names: {', '.join(names)}")
        except x509.ExtensionNotFound:
            pass

        try:
            bc = cert.extensions.get_extension_for_class(x509.BasicConstraints).value
            lines.append(f"    Basic Constraints: CA={bc.ca}, pathlen={bc.path_length}")
        except x509.ExtensionNotFound:
            pass

        lines.append(f"    SHA-256 Fingerprint: {cert.fingerprint(hashes.SHA256()).hex(':').upper()}")
        return "\n".join(lines)
