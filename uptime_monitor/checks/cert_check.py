from __future__ import annotations

import socket
import ssl
import time
from datetime import datetime
from typing import Iterable
from urllib.parse import urlsplit

from cryptography import x509
from cryptography.x509.oid import NameOID

from uptime_monitor.checks.results import CheckResult, elapsed_ms, utcnow
from uptime_monitor.models import CheckStatus, ProbeConfig

DEFAULT_TLS_PORT = 443


def parse_target(endpoint: str) -> tuple[str, int]:
    """Return (hostname, port) for a URL or a bare ``host[:port]``."""
    parts = urlsplit(endpoint if "://" in endpoint else f"//{endpoint}")
    hostname = parts.hostname
    if not hostname:
        raise ValueError(f"no host in endpoint {endpoint!r}")
    return hostname, parts.port or DEFAULT_TLS_PORT


def _tls_context(insecure_skip: bool) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if insecure_skip:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def fetch_leaf_certificate(
    hostname: str, port: int, timeout_s: float, insecure_skip: bool = False
) -> x509.Certificate | None:
    context = _tls_context(insecure_skip)
    with socket.create_connection((hostname, port), timeout=timeout_s) as sock:
        with context.wrap_socket(sock, server_hostname=hostname) as tls_sock:
            der = tls_sock.getpeercert(binary_form=True)
    if not der:
        return None
    return x509.load_der_x509_certificate(der)


def certificate_names(cert: x509.Certificate) -> tuple[list[str], list[str]]:
    common_names = [
        str(attr.value) for attr in cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    ]
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        dns_names: list[str] = []
    else:
        dns_names = san.value.get_values_for_type(x509.DNSName)
    return common_names, dns_names


def hostname_matches(hostname: str, common_names: Iterable[str], dns_names: Iterable[str]) -> bool:
    if hostname in common_names:
        return True

    host = hostname.lower().rstrip(".")

    for san in dns_names:
        san = san.lower()
        if san == host:
            return True
        if san.startswith("*."):
            domain = san[2:]
            # single label only: *.example.com covers api.example.com, not a.b.example.com
            if host.endswith("." + domain) and host.count(".") == domain.count(".") + 1:
                return True
    return False


def evaluate_certificate(
    cert: x509.Certificate,
    hostname: str,
    warning_days: int,
    now: datetime | None = None,
) -> tuple[CheckStatus, str | None]:
    now = now or utcnow()
    not_after = cert.not_valid_after_utc
    not_before = cert.not_valid_before_utc

    if now > not_after:
        return CheckStatus.DOWN, f"certificate expired on {not_after:%Y-%m-%d}"
    if now < not_before:
        return CheckStatus.DOWN, f"certificate not valid until {not_before:%Y-%m-%d}"

    common_names, dns_names = certificate_names(cert)
    if not hostname_matches(hostname, common_names, dns_names):
        return CheckStatus.DOWN, f"certificate name mismatch: {hostname}"

    days_left = (not_after - now).days
    if days_left < warning_days:
        return CheckStatus.WARNING, f"certificate expires in {days_left} days"
    return CheckStatus.UP, None


def run_certificate(config: ProbeConfig) -> CheckResult:
    try:
        hostname, port = parse_target(config.endpoint)
    except ValueError as e:
        return CheckResult.down(config.service_id, f"URL parse error: {e}")

    start = time.perf_counter()
    try:
        cert = fetch_leaf_certificate(hostname, port, config.timeout_s, config.insecure_skip)
    except (OSError, ValueError) as e:
        return CheckResult.down(config.service_id, f"TLS connection error: {e}")
    if cert is None:
        return CheckResult.down(config.service_id, "no certificate presented")

    latency_ms = elapsed_ms(start)
    status, message = evaluate_certificate(cert, hostname, config.ssl_warning_days)
    return CheckResult(
        service_id=config.service_id,
        status=status,
        response_time_ms=latency_ms,
        error_message=message,
    )
