"""Cookie adapter.

On the server, persisted fields are read from the incoming request's
``Cookie`` header so the first render already shows them. Writes are
emitted as ``Set-Cookie`` directives, either onto an aiohttp response or
into an in-memory :class:`CookieJar` standing in for ``document.cookie``.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime
from email.utils import format_datetime
from http.cookies import CookieError, SimpleCookie
from typing import Any
from urllib.parse import quote, unquote

from aiohttp import web

from pycontection.adapters.base import BaseAdapter, Validate
from pycontection.config import ContectionConfig
from pycontection.models.adapter import PersistFlags

_logger = logging.getLogger(__name__)

_SAME_SITE_OUTPUT = {"strict": "Strict", "lax": "Lax", "none": "None"}


def resolve_flags(flags: PersistFlags | None, config: ContectionConfig) -> PersistFlags:
    """Fill unset cookie attributes from *config*.

    The result is validated again, so bad configuration values surface here
    rather than in a rendered header.
    """
    flags = flags or PersistFlags()
    return PersistFlags.model_validate(
        {
            **flags.model_dump(),
            "path": flags.path or "/",
            "max_age": config.cookie_max_age if flags.max_age is None else flags.max_age,
            "secure": config.cookie_secure if flags.secure is None else flags.secure,
            "same_site": flags.same_site or config.cookie_same_site,
        }
    )


def render_set_cookie(name: str, value: str, flags: PersistFlags) -> str:
    """Build a ``Set-Cookie`` header value for *name*."""
    cookie: SimpleCookie = SimpleCookie()
    cookie[name] = value
    morsel = cookie[name]
    if flags.path:
        morsel["path"] = flags.path
    if flags.domain:
        morsel["domain"] = flags.domain
    if flags.expires is not None:
        morsel["expires"] = format_datetime(flags.expires.astimezone(UTC), usegmt=True)
    if flags.max_age is not None:
        morsel["max-age"] = str(flags.max_age)
    if flags.secure:
        morsel["secure"] = True
    if flags.same_site:
        morsel["samesite"] = _SAME_SITE_OUTPUT[flags.same_site]
    return morsel.OutputString()


def parse_cookie_header(header: str | None) -> dict[str, str]:
    """Parse a ``Cookie`` request header; malformed headers yield ``{}``."""
    if not header:
        return {}
    cookie: SimpleCookie = SimpleCookie()
    try:
        cookie.load(header)
    except CookieError as exc:
        _logger.debug("Ignoring malformed Cookie header: %s", exc)
        return {}
    return {key: morsel.value for key, morsel in cookie.items()}


def request_cookies(context: Any) -> dict[str, str]:
    """Extract cookies from a request-like *context*.

    Accepts an :class:`aiohttp.web.Request`, any object with a ``headers``
    mapping, or a bare header mapping.
    """
    if context is None:
        return {}
    if isinstance(context, web.BaseRequest):
        return dict(context.cookies)
    headers = getattr(context, "headers", context)
    if not isinstance(headers, Mapping):
        return {}
    header = headers.get("Cookie")
    if header is None:
        header = headers.get("cookie")
    return parse_cookie_header(header)


class CookieJar:
    """In-memory cookie medium.

    Keeps the current name/value pairs (what ``document.cookie`` would
    return) and every directive written, in order.
    """

    def __init__(self, cookies: Mapping[str, str] | None = None) -> None:
        self._cookies: dict[str, str] = dict(cookies or {})
        self.directives: list[str] = []

    def get(self, name: str) -> str | None:
        return self._cookies.get(name)

    def cookies(self) -> dict[str, str]:
        return dict(self._cookies)

    def set_cookie(self, name: str, value: str, flags: PersistFlags) -> None:
        self.directives.append(render_set_cookie(name, value, flags))
        expired = flags.max_age == 0 or (flags.expires is not None and flags.expires <= datetime.now(UTC))
        if expired:
            self._cookies.pop(name, None)
        else:
            self._cookies[name] = value

    def delete_cookie(self, name: str, flags: PersistFlags) -> None:
        self.set_cookie(name, "", flags.model_copy(update={"max_age": 0, "expires": None}))


class ResponseCookieJar(CookieJar):
    """Cookie medium bound to one aiohttp request/response pair."""

    def __init__(self, response: web.StreamResponse, request: web.BaseRequest | None = None) -> None:
        super().__init__(request.cookies if request is not None else None)
        self._response = response

    def set_cookie(self, name: str, value: str, flags: PersistFlags) -> None:
        super().set_cookie(name, value, flags)
        expires = format_datetime(flags.expires.astimezone(UTC), usegmt=True) if flags.expires else None
        self._response.set_cookie(
            name,
            value,
            expires=expires,
            domain=flags.domain,
            max_age=flags.max_age,
            path=flags.path or "/",
            secure=flags.secure,
            samesite=_SAME_SITE_OUTPUT[flags.same_site] if flags.same_site else None,
        )


class CookieAdapter(BaseAdapter):
    """Persist selected fields as URL-encoded JSON cookies.

    Parameters
    ----------
    jar : CookieJar or None
        Medium written by :meth:`persist` and read by :meth:`restore` when no
        request context is given. Defaults to an empty :class:`CookieJar`.
    save_keys : iterable of str or None
        Fields to persist. ``None`` persists every field.
    flags : PersistFlags or None
        Cookie attributes; unset ones come from :class:`ContectionConfig`.
    prefix, raw_limit : optional
        Override ``cookie_prefix``/``cookie_raw_limit``.
    validate : callable or None
        ``validate({key: value})``; ``False`` or an exception rejects the value.
    """

    def __init__(
        self,
        *,
        jar: CookieJar | None = None,
        save_keys: Iterable[str] | None = None,
        flags: PersistFlags | None = None,
        prefix: str | None = None,
        raw_limit: int | None = None,
        validate: Validate | None = None,
        config: ContectionConfig | None = None,
    ) -> None:
        config = config or ContectionConfig()
        super().__init__(
            prefix=config.cookie_prefix if prefix is None else prefix,
            raw_limit=config.cookie_raw_limit if raw_limit is None else raw_limit,
            save_keys=save_keys,
            flags=resolve_flags(flags, config),
            validate=validate,
        )
        self.jar = jar if jar is not None else CookieJar()

    async def restore(self, context: Any = None) -> dict[str, Any]:
        """Read persisted fields from *context* (a request) or from the jar."""
        cookies = request_cookies(context) if context is not None else self.jar.cookies()

        restored: dict[str, Any] = {}
        for name, raw in cookies.items():
            key = self.field_name(name)
            if key is None or not self.config.selects(key):
                continue
            found, value = self.decode(key, unquote(raw))
            if found:
                restored[key] = value
        _logger.debug("%s restored %s", self.name, sorted(restored))
        return restored

    def persist(
        self,
        keys: Sequence[str],
        state: Mapping[str, Any],
        flags: PersistFlags,
    ) -> None:
        def write(key: str) -> None:
            raw = self.encode(key, state[key])
            if raw is not None:
                self.jar.set_cookie(self.storage_key(key), quote(raw, safe=""), flags)

        self.write_each(self.config.select(keys), write)

    def clear(self, keys: Iterable[str]) -> None:
        """Expire the cookies for *keys*."""
        for key in self.config.select(keys):
            self.jar.delete_cookie(self.storage_key(key), self.config.flags)

    def bind(self, jar: CookieJar) -> CookieAdapter:
        """Return a copy of this adapter writing to *jar* (one per request)."""
        clone = copy.copy(self)
        clone.jar = jar
        return clone
