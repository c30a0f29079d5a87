"""TLS configurations with sane defaults for listening and dialing."""

from __future__ import annotations

import os
import ssl

from cryptography import x509


class DialTLSConfig(ssl.SSLContext):
    """Client-side TLS context that also carries the expected server name."""

    server_name: str = ""


def _load_verify(context: ssl.SSLContext, ca_file: str | os.PathLike[str] | None) -> None:
    if ca_file is None:
        context.load_default_certs()
    else:
        context.load_verify_locations(cafile=os.fspath(ca_file))


def _first_dns_name(cert_file: str | os.PathLike[str]) -> str:
    with open(cert_file, "rb") as handle:
        data = handle.read()
    try:
        cert = x509.load_pem_x509_certificate(data)
    except ValueError as exc:
        raise ValueError(f"parse certificate: {exc}") from exc
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        names: list[str] = []
    else:
        names = san.value.get_values_for_type(x509.DNSName)
    if not names:
        raise ValueError("certificate has no DNS extension")
    return names[0]


def simple_listen_tls_config(
    cert_file: str | os.PathLike[str],
    key_file: str | os.PathLike[str],
    ca_file: str | os.PathLike[str] | None = None,
) -> ssl.SSLContext:
    """Return a server-side context requiring TLS 1.2 and verified client certs.

    ``ca_file`` names the signing CA (e.g. for self-signed certificates); the
    system defaults are used when it is None.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.load_cert_chain(os.fspath(cert_file), os.fspath(key_file))
    _load_verify(context, ca_file)
    context.verify_mode = ssl.CERT_REQUIRED
    return context


def simple_dial_tls_config(
    cert_file: str | os.PathLike[str],
    key_file: str | os.PathLike[str],
    ca_file: str | os.PathLike[str] | None = None,
) -> DialTLSConfig:
    """Return a client-side context requiring TLS 1.2 and presenting the cert.

    The expected server name is the first DNS name of the certificate; a
    certificate without DNS names raises ValueError.
    """
    context = DialTLSConfig(ssl.PROTOCOL_TLS_CLIENT)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.load_cert_chain(os.fspath(cert_file), os.fspath(key_file))
    _load_verify(context, ca_file)
    context.server_name = _first_dns_name(cert_file)
    return context


def simple_tls_config(
    cert_file: str | os.PathLike[str],
    key_file: str | os.PathLike[str],
    ca_file: str | os.PathLike[str] | None = None,
) -> tuple[ssl.SSLContext, DialTLSConfig]:
    """Return the (listen, dial) pair of contexts for the same key pair."""
    listen = simple_listen_tls_config(cert_file, key_file, ca_file)
    dial = simple_dial_tls_config(cert_file, key_file, ca_file)
    return listen, dial