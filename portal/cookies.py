"""Set-Cookie parsing for RPC responses"""

import re
from typing import Dict, Iterable

import httpx

_COOKIE_PAIR = re.compile(r"^([^=]+)=([^;]*)")


def parse_set_cookie_headers(set_cookie_headers: Iterable[str]) -> Dict[str, str]:
    """Map cookie name to value, ignoring attributes (Path, Expires, ...)

    Later headers win when a name repeats.
    """
    cookies: Dict[str, str] = {}
    for header in set_cookie_headers:
        match = _COOKIE_PAIR.match(header.strip())
        if match:
            cookies[match.group(1).strip()] = match.group(2)
    return cookies


def response_cookies(response: httpx.Response) -> Dict[str, str]:
    """Cookies set by a response, read straight from its Set-Cookie headers"""
    return parse_set_cookie_headers(response.headers.get_list("set-cookie"))
