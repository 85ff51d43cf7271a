##########################################################################################
#
# Script name: transport.py
#
# Description: Bounded HTTP retrieval of feed documents.
#
##########################################################################################

import logging
import time
from collections.abc import Callable

import requests
from urllib3.exceptions import HTTPError as StreamError

from .config import ACCEPT_HEADER, FETCH_TIMEOUT_SECONDS, MAX_BODY_BYTES, USER_AGENT


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

Fetcher = Callable[[str, float], bytes]


# ****************************************************************************************
# Exceptions
# ****************************************************************************************


class Error(Exception):
    '''
    Base class for exceptions in this module.
    '''
    pass


class TransportError(Error):
    '''
    Raised when a feed document cannot be retrieved.
    '''
    def __init__(self, url: str, reason: str = ''):
        self.url = url
        self.reason = reason
        self.message = f'Failed to fetch URL: {url}'
        if reason:
            self.message = f'{self.message} ({reason})'
        super().__init__(self.message)


# ****************************************************************************************
# Functions
# ****************************************************************************************


def fetch(
    url: str,
    timeout: float = FETCH_TIMEOUT_SECONDS,
    max_bytes: int = MAX_BODY_BYTES,
    verify: bool = True,
) -> bytes:
    '''
    Retrieve the raw bytes behind a feed URL.

    Input:
        url: feed address; redirects are followed.
        timeout: ceiling in seconds for the whole retrieval, not only for
            each socket read.
        max_bytes: bodies larger than this are refused.
        verify: TLS certificate verification.

    Output:
        The response body.

    Raises:
        TransportError on connection errors, HTTP status >= 400, an empty or
        oversized body, or when the deadline passes while streaming.

    The body is read with `raw.read1`, which returns whatever one socket read
    delivers, so the deadline is checked after every delivery however slowly
    the server trickles bytes. A silent server is cut off by the socket
    timeout, which bounds the overrun to one read.
    '''
    deadline = time.monotonic() + timeout
    headers = {'User-Agent': USER_AGENT, 'Accept': ACCEPT_HEADER}
    try:
        response = requests.get(
            url,
            headers=headers,
            timeout=timeout,
            stream=True,
            allow_redirects=True,
            verify=verify,
        )
    except requests.RequestException as exc:
        raise TransportError(url, str(exc)) from exc

    with response:
        if response.status_code >= 400:
            raise TransportError(url, f'HTTP {response.status_code}')
        chunks: list[bytes] = []
        size = 0
        try:
            while True:
                chunk = response.raw.read1(CHUNK_SIZE, decode_content=True)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise TransportError(url, f'body exceeds {max_bytes} bytes')
                if time.monotonic() > deadline:
                    raise TransportError(url, f'timed out after {timeout:g}s')
                chunks.append(chunk)
        except (requests.RequestException, StreamError) as exc:
            raise TransportError(url, str(exc)) from exc

    body = b''.join(chunks)
    if not body:
        raise TransportError(url, 'empty body')
    log.debug('Fetched %d byte(s) from %s', len(body), url)
    return body
