"""Options that adjust outgoing HTTP requests and the sessions that send them."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import requests
from requests.adapters import HTTPAdapter, PoolManager

__all__ = [
    "RequestOption",
    "HeaderOption",
    "HostOption",
    "OptionList",
    "TLSRequestOption",
    "with_header",
    "with_host",
    "options",
    "with_tls",
]

_DEFAULT_PORTS = {"http": 80, "https": 443}


class RequestOption:
    """Adjusts a request (anything with ``headers``) or a :class:`requests.Session`.

    Both methods leave their argument unchanged unless a subclass overrides them.
    """

    def apply_to_request(self, request: Any) -> None:
        """Modify ``request`` before it is sent."""
        return None

    def apply_to_session(self, session: requests.Session) -> None:
        """Modify ``session`` before it sends the request."""
        return None


@dataclass(frozen=True)
class HeaderOption(RequestOption):
    """Sets headers on the request."""

    headers: Mapping[str, str] = field(default_factory=dict)

    def apply_to_request(self, request: Any) -> None:
        for name, value in self.headers.items():
            request.headers[name] = value


@dataclass(frozen=True)
class HostOption(RequestOption):
    """Overrides the Host the request is addressed to."""

    host: str

    def apply_to_request(self, request: Any) -> None:
        request.headers["Host"] = self.host


@dataclass(frozen=True)
class OptionList(RequestOption):
    """Applies several options in order; the first error stops the rest."""

    options: tuple[RequestOption, ...] = ()

    def __iter__(self) -> Iterator[RequestOption]:
        return iter(self.options)

    def __len__(self) -> int:
        return len(self.options)

    def apply_to_request(self, request: Any) -> None:
        for option in self.options:
            option.apply_to_request(request)

    def apply_to_session(self, session: requests.Session) -> None:
        for option in self.options:
            option.apply_to_session(session)


class _RedirectingPoolManager(PoolManager):
    """Opens connections for selected host/port pairs to another host, keeping the TLS name."""

    def __init__(self, redirects: Mapping[tuple[str, str], str], *args: Any, **kwargs: Any):
        self._redirects = dict(redirects)
        super().__init__(*args, **kwargs)

    def connection_from_host(self, host=None, port=None, scheme="http", pool_kwargs=None):
        scheme = (scheme or "http").lower()
        effective_port = port or _DEFAULT_PORTS.get(scheme, 80)
        target = self._redirects.get(((host or "").lower(), str(effective_port)))
        if target is not None:
            if scheme == "https":
                pool_kwargs = dict(pool_kwargs or {})
                pool_kwargs.setdefault("server_hostname", host)
                pool_kwargs.setdefault("assert_hostname", host)
            host = target
        return super().connection_from_host(host, port, scheme, pool_kwargs=pool_kwargs)


class _IngressAdapter(HTTPAdapter):
    __attrs__ = [*HTTPAdapter.__attrs__, "_redirects"]

    def __init__(self, redirects: Mapping[tuple[str, str], str], **kwargs: Any):
        self._redirects = dict(redirects)
        super().__init__(**kwargs)

    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        self._pool_connections = connections
        self._pool_maxsize = maxsize
        self._pool_block = block
        self.poolmanager = _RedirectingPoolManager(
            self._redirects, num_pools=connections, maxsize=maxsize, block=block, **pool_kwargs
        )


@dataclass(frozen=True)
class TLSRequestOption(RequestOption):
    """Sends the request over TLS to an ingress, trusting a given CA.

    Connections to ``host:secure_ingress_port`` are opened to ``ingress_host``
    instead, while the certificate is still checked against ``host``.
    """

    ca_cert_file: str
    host: str
    ingress_host: str
    secure_ingress_port: str
    client_cert_file: str = ""
    client_key_file: str = ""

    def with_client_certificate(self, client_cert_file: str, client_key_file: str) -> TLSRequestOption:
        """Return a copy that also presents the given client certificate."""
        return dataclasses.replace(
            self, client_cert_file=client_cert_file, client_key_file=client_key_file
        )

    def apply_to_request(self, request: Any) -> None:
        request.headers["Host"] = self.host

    def apply_to_session(self, session: requests.Session) -> None:
        """Configure ``session``; raises :class:`OSError` if a certificate file cannot be read."""
        Path(self.ca_cert_file).read_bytes()
        session.verify = self.ca_cert_file
        if self.client_cert_file:
            Path(self.client_cert_file).read_bytes()
            Path(self.client_key_file).read_bytes()
            session.cert = (self.client_cert_file, self.client_key_file)
        adapter = _IngressAdapter(
            {(self.host.lower(), str(self.secure_ingress_port)): self.ingress_host}
        )
        session.mount("https://", adapter)
        session.mount("http://", adapter)


def with_header(name: str, value: str) -> HeaderOption:
    """Return an option that sets the header ``name`` to ``value``."""
    return HeaderOption({name: value})


def with_host(host: str) -> HostOption:
    """Return an option that sets the request's Host."""
    return HostOption(host)


def options(*args: RequestOption) -> OptionList:
    """Combine several options into one."""
    return OptionList(tuple(args))


def with_tls(ca_cert_file: str, host: str, ingress_host: str, secure_ingress_port: str) -> TLSRequestOption:
    """Return an option that sends the request to ``host`` through the secure ingress."""
    return TLSRequestOption(ca_cert_file, host, ingress_host, secure_ingress_port)